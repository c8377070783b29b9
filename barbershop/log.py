# barbershop/log.py

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the API process and the reminder scheduler."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # SQL statements are only wanted when DB_ECHO is set
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
