"""
RagDesk Test Configuration

Pytest fixtures and in-memory fakes for the external services.
"""

import hashlib
import math
import re
from collections.abc import Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from ragdesk.errors import IndexMismatchError, InvalidInputError, VectorIndexError
from ragdesk.rag.embedding import EMBEDDING_DIMENSION
from ragdesk.rag.vector_index import SearchMatch

# ============================================
# Fakes
# ============================================


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeVectorIndex:
    """In-memory stand-in for VectorIndex with cosine similarity."""

    def __init__(self) -> None:
        self.indexes: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_delete = False

    async def list_indexes(self) -> list[str]:
        return list(self.indexes)

    async def ensure(self, index_name, dimension, metric="cosine") -> bool:
        self.calls.append(("ensure", index_name))
        existing = self.indexes.get(index_name)
        if existing is not None:
            if existing["dimension"] != dimension:
                raise IndexMismatchError(
                    "Existing index dimension does not match embeddings",
                    {"index_name": index_name},
                )
            return False
        self.indexes[index_name] = {"dimension": dimension, "records": {}}
        return True

    async def upsert(self, index_name, records) -> None:
        self.calls.append(("upsert", index_name))
        index = self.indexes[index_name]
        for record in records:
            if len(record["values"]) != index["dimension"]:
                raise IndexMismatchError(
                    "Vector dimension does not match index",
                    {
                        "index_name": index_name,
                        "vector_dimension": len(record["values"]),
                        "index_dimension": index["dimension"],
                    },
                )
        for record in records:
            index["records"][record["id"]] = record

    async def search(self, index_name, vector, top_k, include_metadata=True):
        self.calls.append(("search", index_name))
        index = self.indexes.get(index_name)
        if index is None:
            raise VectorIndexError("Vector index query failed", details={"index_name": index_name})
        matches = [
            SearchMatch(
                id=r["id"],
                score=_cosine(vector, r["values"]),
                metadata=dict(r["metadata"]) if include_metadata else {},
            )
            for r in index["records"].values()
        ]
        matches.sort(key=lambda m: (-m.score, m.id))
        return matches[:top_k]

    async def delete(self, index_name) -> bool:
        self.calls.append(("delete", index_name))
        if self.fail_delete:
            raise VectorIndexError("Vector index delete_index failed")
        return self.indexes.pop(index_name, None) is not None


class FakeEmbeddingClient:
    """Deterministic hashed bag-of-words embeddings."""

    def __init__(self, dimension: int = EMBEDDING_DIMENSION) -> None:
        self.dimension = dimension
        self.calls: list[dict] = []

    def vector_for(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        for token in re.findall(r"\w+", text.lower()):
            slot = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % self.dimension
            vector[slot] += 1.0
        if not any(vector):
            vector[-1] = 1.0
        return vector

    async def embed(self, texts, input_type="passage"):
        self.calls.append({"texts": list(texts), "input_type": input_type})
        return [self.vector_for(t) for t in texts]


class FakeCompletionClient:
    """Echoes the assembled context back as the answer."""

    def __init__(self, tags=("llama-3.1", "llama-3.1-chat", "claude")) -> None:
        self.backends = {tag: tag for tag in tags}
        self.calls: list[dict] = []

    def backend_for(self, llm_model):
        if llm_model not in self.backends:
            raise InvalidInputError(
                f"Unknown LLM model '{llm_model}'", {"field": "llmModel"}
            )
        return self.backends[llm_model]

    async def complete(self, system_prompt, context, question, llm_model):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "context": context,
                "question": question,
                "llm_model": llm_model,
            }
        )
        return f"Based on the document: {context}"


@pytest.fixture
def fake_vector_index() -> FakeVectorIndex:
    return FakeVectorIndex()


@pytest.fixture
def fake_embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def fake_completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


# ============================================
# HTTP Mocking
# ============================================


@pytest.fixture
def mock_httpx(mocker):
    """Patch httpx.AsyncClient; returns a factory configuring the reply.

    Usage:
        mock_client = mock_httpx(json_data={...})
        mock_client = mock_httpx(side_effect=httpx.ConnectTimeout("slow"))
    """

    def _factory(
        method: str = "post",
        status_code: int = 200,
        json_data=None,
        text: str = "",
        headers: dict | None = None,
        side_effect=None,
    ):
        mock_response = mocker.Mock()
        mock_response.status_code = status_code
        mock_response.is_success = 200 <= status_code < 300
        mock_response.text = text
        mock_response.headers = headers or {}
        if isinstance(json_data, Exception):
            mock_response.json.side_effect = json_data
        else:
            mock_response.json.return_value = json_data

        mock_client = mocker.AsyncMock()
        request = getattr(mock_client, method)
        if side_effect is not None:
            request.side_effect = side_effect
        else:
            request.return_value = mock_response
        mock_client.__aenter__ = mocker.AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = mocker.AsyncMock(return_value=False)

        mocker.patch("httpx.AsyncClient", return_value=mock_client)
        return mock_client

    return _factory


# ============================================
# Sample Data Fixtures
# ============================================


def make_pdf(*pages: str) -> bytes:
    """Build a PDF with one page per argument."""
    from fpdf import FPDF

    pdf = FPDF()
    pdf.set_font("Helvetica", size=12)
    for text in pages:
        pdf.add_page()
        if text:
            pdf.multi_cell(0, 10, text)
    return bytes(pdf.output())


@pytest.fixture
def pdf_factory():
    """Callable building multi-page PDFs from page texts."""
    return make_pdf


@pytest.fixture
def sample_pdf() -> bytes:
    """Single-page PDF stating one fact."""
    return make_pdf("The capital of France is Paris.")


@pytest.fixture
def sample_html() -> str:
    return """
    <html>
      <head><title>Travel</title><style>body { color: red; }</style></head>
      <body>
        <header>Site Header</header>
        <nav>Home | About</nav>
        <main><h1>Paris</h1><p>The Eiffel Tower is in Paris.</p></main>
        <script>var tracking = true;</script>
        <footer>Copyright 2024</footer>
      </body>
    </html>
    """


# ============================================
# Database Fixtures
# ============================================


@pytest_asyncio.fixture
async def registry(tmp_path):
    """ModelRegistry over a throwaway SQLite database."""
    from ragdesk.db.database import (
        close_db,
        create_db_engine,
        get_async_session_maker,
        init_db,
    )
    from ragdesk.db.registry import ModelRegistry

    engine = create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    await init_db(engine)
    yield ModelRegistry(get_async_session_maker(engine))
    await close_db(engine)


# ============================================
# Client Fixtures
# ============================================


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None, None, None]:
    """Clear in-memory metrics before each test."""
    from ragdesk.observability.metrics import reset_metrics as _reset

    _reset()
    yield


@pytest.fixture
def client(
    tmp_path,
    monkeypatch,
    fake_vector_index,
    fake_embedding_client,
    fake_completion_client,
) -> Generator[TestClient, None, None]:
    """Test client backed by SQLite with fake network services."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")

    from ragdesk.main import app

    with TestClient(app) as c:
        app.state.vector_index = fake_vector_index
        app.state.embedding_client = fake_embedding_client
        app.state.completion_client = fake_completion_client
        yield c


# ============================================
# Marker Configuration
# ============================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
