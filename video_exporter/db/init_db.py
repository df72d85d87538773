import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from video_exporter.db.models import Base
from video_exporter.db.session import engine

logger = logging.getLogger(__name__)


async def init_models(db_engine: AsyncEngine | None = None) -> list[str]:
    """Create the AI title cache tables that do not exist yet; returns their names."""

    async with (db_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    tables = sorted(Base.metadata.tables)
    logger.info("Database schema ready", extra={"tables": tables})
    return tables


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_models())
