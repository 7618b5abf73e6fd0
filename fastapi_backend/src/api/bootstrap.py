import logging

from src.api.errors import BootstrapError, StoreError
from src.api.users import UserStore

logger = logging.getLogger("tierdemo.bootstrap")


# PUBLIC_INTERFACE
def bootstrap(store: UserStore) -> int:
    """Prepare the database before the API accepts traffic.

    Runs, in order: liveness probe, schema creation, baseline seeding. Returns
    the number of seeded rows. Any store failure is raised as
    :class:`BootstrapError`; there is no retry.
    """
    try:
        store.probe()
        logger.info("Connected to database successfully")
        store.ensure_schema()
        seeded = store.seed_if_empty()
    except StoreError as exc:
        logger.error("Database bootstrap failed: %s", exc.detail or exc.public_message)
        raise BootstrapError(f"database bootstrap failed: {exc.public_message}") from exc
    logger.info("Database initialized successfully")
    return seeded
