"""Initialize the database with proper schema"""

import logging

from retroboard.db.base import Base
# Import the models package so every table is registered before create_all()
from retroboard.db import models as _models  # noqa: F401
from retroboard.db.session import engine

logger = logging.getLogger("retroboard.database")


def init_database(bind=None) -> None:
    """Create all tables with proper schema"""
    target = bind if bind is not None else engine
    try:
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=target)

        table_names = [table.name for table in Base.metadata.sorted_tables]
        logger.info("Database initialized", extra={
            "table_count": len(table_names),
            "tables": table_names
        })

    except Exception as e:
        logger.error(f"Error initializing database: {e}", extra={
            "error_type": type(e).__name__,
        })
        raise


if __name__ == "__main__":
    init_database()
