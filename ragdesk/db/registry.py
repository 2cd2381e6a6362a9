"""
RagDesk Model Registry

Durable mapping from model name to {index name, API key, completion backend}.
Name uniqueness is enforced by database constraints, so two concurrent
creates of the same name resolve to exactly one success.
"""

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ragdesk.api.auth import keys_match
from ragdesk.db.database import session_scope
from ragdesk.db.models import RagModel
from ragdesk.errors import AuthError, DuplicateNameError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)

INDEX_NAME_PREFIX = "rag-model-"
# Pinecone index names: lowercase alphanumerics and hyphens, max 45 chars
MAX_INDEX_NAME_LENGTH = 45
_VALID_INDEX_NAME = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


def derive_index_name(name: str) -> str:
    """Derive the backing index name from a model name.

    Lowercases, replaces whitespace runs with a hyphen and adds the
    ``rag-model-`` prefix.

    Raises:
        InvalidInputError: If the result is not a valid index name.
    """
    slug = re.sub(r"\s+", "-", name.strip().lower())
    index_name = f"{INDEX_NAME_PREFIX}{slug}"
    if (
        not slug
        or len(index_name) > MAX_INDEX_NAME_LENGTH
        or not _VALID_INDEX_NAME.match(index_name)
    ):
        raise InvalidInputError(
            "Model name must contain only letters, digits, spaces and hyphens "
            f"and yield an index name of at most {MAX_INDEX_NAME_LENGTH} characters",
            {"field": "modelName", "model_name": name},
        )
    return index_name


class ModelRegistry:
    """CRUD and authentication over the ``rag_models`` table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def create(
        self, name: str, index_name: str, api_key: str, llm_model: str
    ) -> RagModel:
        """Insert a new model record.

        Raises:
            DuplicateNameError: If the name or index name is already taken.
        """
        model = RagModel(
            name=name, index_name=index_name, api_key=api_key, llm_model=llm_model
        )
        async with self._session_maker() as session:
            session.add(model)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateNameError(
                    f"Model '{name}' already exists",
                    {"model_name": name, "index_name": index_name},
                ) from e

        logger.info("Registered model %s (index=%s)", name, index_name)
        return model

    async def get_by_name(self, name: str) -> RagModel | None:
        async with self._session_maker() as session:
            result = await session.execute(
                select(RagModel).where(RagModel.name == name)
            )
            return result.scalar_one_or_none()

    async def get_by_index_name(self, index_name: str) -> RagModel | None:
        async with self._session_maker() as session:
            result = await session.execute(
                select(RagModel).where(RagModel.index_name == index_name)
            )
            return result.scalar_one_or_none()

    async def list(self) -> list[RagModel]:
        """All registered models, oldest first."""
        async with self._session_maker() as session:
            result = await session.execute(
                select(RagModel).order_by(RagModel.created_at, RagModel.id)
            )
            return list(result.scalars().all())

    async def delete(self, name: str) -> RagModel:
        """Remove a model record and return it.

        Raises:
            NotFoundError: If no model has this name.
        """
        async with session_scope(self._session_maker) as session:
            result = await session.execute(
                select(RagModel).where(RagModel.name == name)
            )
            model = result.scalar_one_or_none()
            if model is None:
                raise NotFoundError(
                    f"Model '{name}' not found", {"model_name": name}
                )
            await session.delete(model)

        logger.info("Removed model %s from registry", name)
        return model

    async def authenticate(self, name: str, supplied_key: str | None) -> RagModel:
        """Return the model if *supplied_key* is its API key.

        Unknown names and wrong keys fail identically.

        Raises:
            AuthError: On any mismatch.
        """
        model = await self.get_by_name(name)
        expected = model.api_key if model is not None else ""
        if model is None or not keys_match(expected, supplied_key):
            logger.info("Rejected API key for model %s", name)
            raise AuthError("Invalid API key", {"model_name": name})
        return model
