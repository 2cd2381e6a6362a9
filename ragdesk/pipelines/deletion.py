"""
Model Deletion for RagDesk

Two-phase removal: the backing index goes first, then the registry record.
If the index cannot be deleted the registry is left untouched and the
operation can simply be retried; if the registry delete fails after the
index is gone, PartialDeletionError reports the inconsistency.
"""

import logging
from dataclasses import dataclass

from ragdesk.errors import NotFoundError, PartialDeletionError, RagDeskError

logger = logging.getLogger(__name__)


@dataclass
class DeletionResult:
    model_name: str
    index_name: str
    index_deleted: bool


class DeletionPipeline:
    """Deletes a model's vector index and registry record."""

    def __init__(self, registry, vector_index):
        self.registry = registry
        self.vector_index = vector_index

    async def run(self, model_name: str) -> DeletionResult:
        """Delete *model_name*.

        Returns:
            DeletionResult; ``index_deleted`` is False when the index was
            already absent.

        Raises:
            NotFoundError: No such model (nothing is changed).
            VectorIndexError: Index deletion failed (registry untouched).
            PartialDeletionError: Index deleted but registry record remains.
        """
        model = await self.registry.get_by_name(model_name)
        if model is None:
            raise NotFoundError(
                f"Model '{model_name}' not found", {"model_name": model_name}
            )

        index_deleted = await self.vector_index.delete(model.index_name)

        try:
            await self.registry.delete(model_name)
        except Exception as e:
            logger.error(
                "Index %s deleted but registry record %s remains: %s",
                model.index_name,
                model_name,
                e,
            )
            reason = e.message if isinstance(e, RagDeskError) else str(e)
            raise PartialDeletionError(
                "Index deleted but model record could not be removed",
                {
                    "model_name": model_name,
                    "index_name": model.index_name,
                    "reason": reason,
                },
            ) from e

        logger.info("Deleted model %s", model_name)
        return DeletionResult(
            model_name=model_name,
            index_name=model.index_name,
            index_deleted=index_deleted,
        )
