"""Engine construction with connection pooling for Lambda reuse."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from helpdesk_reply.config import HelpdeskSettings, load_secret_json
from helpdesk_reply.utils.logging_config import get_logger

logger = get_logger(__name__)

_engine: Optional[Engine] = None


def get_db_engine(settings: HelpdeskSettings) -> Optional[Engine]:
    """Get or create the SQLAlchemy engine; None when no database is configured."""
    global _engine
    if _engine is None:
        db_url = settings.database_url
        if not db_url and settings.db_secret_arn:
            db_url = _secret_to_db_url(settings.db_secret_arn)
        if not db_url:
            logger.warning("DATABASE_URL not set; reply handling is unavailable")
            return None
        _engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=2,
            pool_pre_ping=True,
            pool_recycle=300,
        )
    return _engine


def _secret_to_db_url(secret_arn: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS secret."""
    try:
        secret = load_secret_json(secret_arn)
        engine = secret.get("engine", "mysql")
        host = secret.get("host")
        username = secret.get("username")
        password = secret.get("password")
        dbname = secret.get("dbname", "hesk")
        if not (host and username and password):
            return None
        if engine.startswith("postgres"):
            port = secret.get("port", 5432)
            return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"
        port = secret.get("port", 3306)
        return f"mysql+pymysql://{username}:{password}@{host}:{port}/{dbname}?charset=utf8mb4"
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        return None
