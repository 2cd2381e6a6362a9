"""
Reconcile vector indexes with the model registry.

Lists ``rag-model-*`` indexes that no registered model points at (left
behind by failed ingestions) and deletes them after confirmation.
"""

import asyncio
import logging

from ragdesk.db.database import close_db, create_db_engine, get_async_session_maker, init_db
from ragdesk.db.registry import INDEX_NAME_PREFIX, ModelRegistry
from ragdesk.rag.vector_index import VectorIndex

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def find_orphaned_indexes(registry: ModelRegistry, vector_index: VectorIndex) -> list[str]:
    """Index names carrying the model prefix but absent from the registry."""
    registered = {m.index_name for m in await registry.list()}
    return sorted(
        name
        for name in await vector_index.list_indexes()
        if name.startswith(INDEX_NAME_PREFIX) and name not in registered
    )


async def reconcile_indexes(assume_yes: bool = False) -> int:
    """Delete orphaned indexes; returns how many were removed."""
    engine = create_db_engine()
    try:
        await init_db(engine)
        registry = ModelRegistry(get_async_session_maker(engine))
        vector_index = VectorIndex()

        orphaned = await find_orphaned_indexes(registry, vector_index)
        logger.info("=== Orphaned Indexes ===")
        for name in orphaned:
            logger.info("  %s", name)

        if not orphaned:
            logger.info("No orphaned indexes found!")
            return 0

        if not assume_yes:
            response = input(f"Delete {len(orphaned)} orphaned indexes? (yes/no): ")
            if response.lower() != "yes":
                logger.info("Cancelled.")
                return 0

        deleted = 0
        for name in orphaned:
            if await vector_index.delete(name):
                deleted += 1
                logger.info("  Deleted %s", name)

        logger.info("Done: %d indexes removed", deleted)
        return deleted
    finally:
        await close_db(engine)


if __name__ == "__main__":
    import sys

    asyncio.run(reconcile_indexes(assume_yes="--yes" in sys.argv[1:]))
