import asyncio
import hashlib
import logging

import pytest

from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.db.DocumentRepository import DocumentRepository
from shared.db.database import close_db, init_db
from shared.db.models import Document, Project
from shared.exceptions.errors import CollectionNotFoundError, EmbeddingError, VectorStoreError
from shared.helper.HelperConfig import HelperConfig

OWNER_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
VECTOR_SIZE = 4


# ==========================================
# FAKES
# ==========================================


class FakeRAGClient:
    """In-memory stand-in for a RAGClientInterface implementation.

    Upsert and delete suspend like a network call would, so concurrently
    scheduled documents interleave inside the synchronizer.
    """

    def __init__(self) -> None:
        self.points: dict[int, VectorPoint] = {}
        self.calls: list[tuple[str, object]] = []
        self.fail_upsert = False
        self.fail_upsert_for: set[int] = set()
        self.fail_delete = False
        self.latency = 0.0
        self.collection_exists = True
        self.fail_get_collection = False
        self.create_returns = True
        self.indexes: list[tuple[str, str]] = []

    def get_collection_name(self) -> str:
        return "test-chunks"

    async def do_get_collection(self) -> dict:
        self.calls.append(("get_collection", None))
        if self.fail_get_collection:
            raise VectorStoreError("boom", status_code=500)
        if not self.collection_exists:
            raise CollectionNotFoundError("missing", status_code=404)
        return {"status": "green"}

    async def do_create_collection(self, vector_size: int = 768, distance: str = "Cosine") -> bool:
        self.calls.append(("create_collection", (vector_size, distance)))
        self.collection_exists = True
        return self.create_returns

    async def do_create_payload_index(self, field_name: str, field_type: str, wait: bool = True) -> None:
        self.calls.append(("create_payload_index", (field_name, field_type)))
        self.indexes.append((field_name, field_type))

    async def do_upsert_points(self, points: list[VectorPoint], wait: bool = True) -> None:
        self.calls.append(("upsert", [p.id for p in points]))
        await asyncio.sleep(self.latency)
        if self.fail_upsert or any(p.payload.document_id in self.fail_upsert_for for p in points):
            raise VectorStoreError("upsert failed", status_code=500)
        for point in points:
            self.points[point.id] = point

    async def do_delete_points(self, point_ids: list[int], wait: bool = True) -> None:
        self.calls.append(("delete", list(point_ids)))
        await asyncio.sleep(self.latency)
        if self.fail_delete:
            raise VectorStoreError("delete failed", status_code=500)
        for point_id in point_ids:
            self.points.pop(point_id, None)

    def point_ids_of(self, document_id: int) -> list[int]:
        return sorted(pid for pid, point in self.points.items() if point.payload.document_id == document_id)

    def point_calls(self) -> list[tuple[str, object]]:
        return [call for call in self.calls if call[0] in ("upsert", "delete")]


class FakeEmbedder:
    """Deterministic embedding function: the vector is derived from the text hash."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.texts: list[str] = []

    async def __call__(self, text: str) -> list[float]:
        self.texts.append(text)
        if text in self.fail_on:
            raise EmbeddingError(f"cannot embed '{text[:20]}'")
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [digest[i] / 255.0 for i in range(VECTOR_SIZE)]


# ==========================================
# CORE FIXTURES
# ==========================================


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("docsync-tests"))


@pytest.fixture
def session_factory():
    factory = init_db("sqlite://", create_tables=True)
    yield factory
    close_db()


@pytest.fixture
def repository(helper_config, session_factory) -> DocumentRepository:
    return DocumentRepository(helper_config=helper_config, session_factory=session_factory)


@pytest.fixture
def rag_client() -> FakeRAGClient:
    return FakeRAGClient()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def create_document(session_factory):
    """Factory fixture inserting a project (once) and a document, returning the document id."""
    project_ids: list[int] = []

    def _create(name: str = "notes.md", content: str = "", status: str = "uploaded") -> int:
        with session_factory() as session:
            if not project_ids:
                project = Project(name="Test project", owner_id=OWNER_ID)
                session.add(project)
                session.flush()
                project_ids.append(project.id)
            doc = Document(project_id=project_ids[0], name=name, content=content, status=status)
            session.add(doc)
            session.commit()
            return doc.id

    return _create


@pytest.fixture
def update_content(session_factory):
    """Replace a document's content the way an external update would."""

    def _update(document_id: int, content: str) -> None:
        with session_factory() as session:
            doc = session.get(Document, document_id)
            doc.content = content
            session.commit()

    return _update
