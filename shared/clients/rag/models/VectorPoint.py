"""Vector index point models shared by all RAG backends."""

from pydantic import BaseModel


class ChunkPayload(BaseModel):
    """Metadata stored alongside each chunk vector.

    Every field is covered by a payload index so retrieval can filter on it.

    Attributes:
        user_id:     Owner of the project the document belongs to (UUID string).
        project_id:  Relational id of the project.
        document_id: Relational id of the document.
        chunk_id:    Relational id of the chunk, identical to the point id.
    """

    user_id: str
    project_id: int
    document_id: int
    chunk_id: int


class VectorPoint(BaseModel):
    """One vector index entry.

    The point id is the relational chunk id, which joins both stores.
    """

    id: int
    vector: list[float]
    payload: ChunkPayload


class PayloadIndex(BaseModel):
    """A secondary index on one payload field.

    Attributes:
        field_name: Payload key, e.g. "document_id".
        field_type: Backend schema type, e.g. "keyword" or "integer".
    """

    field_name: str
    field_type: str
