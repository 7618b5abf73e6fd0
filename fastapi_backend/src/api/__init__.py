"""
API package for the multi-tier demo backend.

Modules:
- db: PostgreSQL connection pooling + query helpers
- users: users table access (schema, seeding, listing, probe)
- bootstrap: startup sequence that prepares the database
- schemas: Pydantic models for the REST API
- errors: database error taxonomy
"""
