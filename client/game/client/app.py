import structlog

from game.client.settings import ClientSettings
from game.session.manager import SessionManager
from shared.logging import setup_logging

logger = structlog.get_logger()


def create_client(settings: ClientSettings | None = None) -> SessionManager:
    """Configure logging and build a session manager ready for connect()."""
    if settings is None:
        settings = ClientSettings()

    log_file = setup_logging(log_dir=settings.log_dir, tag=settings.nick)
    structlog.contextvars.bind_contextvars(nick=settings.nick)
    logger.info(
        "client created",
        host=settings.host,
        port=settings.port,
        log_file=str(log_file) if log_file else None,
    )
    return SessionManager(settings)
