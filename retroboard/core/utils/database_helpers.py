"""
Database helper utilities for Retro Board.

Connection and table checks used by the health endpoint and setup script.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from retroboard.core.config import settings
from retroboard.db.session import engine as default_engine

logger = logging.getLogger(__name__)

EXPECTED_TABLES = ("sessions", "cards", "votes")


def get_database_type(database_url: Optional[str] = None) -> str:
    """
    Get the database type from a database URL.

    Returns:
        str: Database type ('sqlite', 'postgresql', etc.)
    """
    url = (database_url or settings.database_url).lower()
    if url.startswith("sqlite"):
        return "sqlite"
    if url.startswith("postgresql"):
        return "postgresql"
    return url.split("://")[0].split("+")[0] if "://" in url else "unknown"


def get_database_info(engine: Optional[Engine] = None) -> Dict[str, Any]:
    """
    Get database connection information and metadata.

    Returns:
        Dict containing database type, connection status, version and tables
    """
    target = engine or default_engine
    db_type = get_database_type(str(target.url))
    info: Dict[str, Any] = {
        "type": db_type,
        "connected": False,
        "tables": [],
        "version": None,
        "error": None,
    }

    try:
        with target.connect() as conn:
            info["connected"] = True
            if db_type == "sqlite":
                info["version"] = conn.execute(text("SELECT sqlite_version()")).scalar()
            elif db_type == "postgresql":
                version_str = conn.execute(text("SELECT version()")).scalar()
                info["version"] = version_str.split()[1] if version_str else "unknown"
        info["tables"] = inspect(target).get_table_names()
    except Exception as e:
        logger.error(f"Database connection error: {e}")
        info["error"] = str(e)

    return info


def check_database_health(engine: Optional[Engine] = None) -> Dict[str, Any]:
    """
    Perform database health check.

    ``status`` is ``healthy``, ``warning`` when board tables are missing,
    or ``unhealthy`` when the database cannot be reached.
    """
    health: Dict[str, Any] = {
        "status": "healthy",
        "database_type": None,
        "connected": False,
        "table_count": 0,
        "missing_tables": [],
        "last_error": None,
    }

    db_info = get_database_info(engine)
    health["database_type"] = db_info["type"]
    health["connected"] = db_info["connected"]
    health["table_count"] = len(db_info["tables"])
    health["missing_tables"] = [t for t in EXPECTED_TABLES if t not in db_info["tables"]]

    if db_info["error"]:
        health["status"] = "unhealthy"
        health["last_error"] = db_info["error"]
    elif health["missing_tables"]:
        health["status"] = "warning"
        health["last_error"] = "Board tables missing - database may need initialization"

    return health
