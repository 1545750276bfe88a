import logging

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from chat_relay.core.config import Settings, settings

logger = logging.getLogger(__name__)


def build_engine(config: Settings) -> Engine:
    """SQLite at db_path unless DATABASE_URL selects another backend."""
    if config.database_url:
        logger.info("Initializing database from DATABASE_URL")
        return create_engine(config.database_url, echo=config.debug, pool_pre_ping=True)

    logger.info(f"Initializing SQLite database at {config.db_path}")
    return create_engine(
        f"sqlite:///{config.db_path}",
        echo=config.debug,
        connect_args={"check_same_thread": False},
    )


engine = build_engine(settings)


def init_db(target: Engine | None = None) -> None:
    import chat_relay.models.conversation  # noqa: F401 - ensure models are registered
    SQLModel.metadata.create_all(target or engine)