"""Pydantic models for documents and chunks as seen by the processing pipeline.

Hierarchy:
  DocumentStatus   : lifecycle of a document's processing.
  StoredChunk      : a chunk row as persisted in the relational store.
  DocumentSnapshot : a document with its attribution and prior chunk set,
                      detached from any database session.
  ChunkCandidate   : a freshly computed chunk, not yet persisted.
  ChunkDiff        : classification of candidates against the prior chunk set.
"""

import enum
import hashlib
from typing import Any

from pydantic import BaseModel, Field


class DocumentStatus(str, enum.Enum):
    """Document processing status.

    uploaded -> processing -> completed, or -> failed from any stage.
    completed and failed stay until the next content change re-triggers processing.
    """

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def compute_content_hash(content: str) -> str:
    """Return the SHA-256 hex digest of the trimmed content."""
    return hashlib.sha256(content.strip().encode("utf-8")).hexdigest()


class StoredChunk(BaseModel):
    """A persisted chunk row.

    Attributes:
        id:           Relational id, also the vector point id.
        index:        Ordinal position within the document when it was inserted.
        content:      Chunk text.
        content_hash: SHA-256 of the trimmed text.
    """

    id: int
    index: int
    content: str
    content_hash: str | None = None


class DocumentSnapshot(BaseModel):
    """A document read at the start of processing.

    Attributes:
        id:         Relational document id.
        name:       File name, its suffix selects the chunking strategy.
        content:    Current text content.
        project_id: Owning project, used for payload attribution.
        owner_id:   Owner of the project (UUID string), used for payload attribution.
        chunks:     Prior chunk set, untouched until the synchronizer commits.
    """

    id: int
    name: str
    content: str
    project_id: int
    owner_id: str
    chunks: list[StoredChunk] = []


class ChunkCandidate(BaseModel):
    """A chunk produced by a chunker.

    Attributes:
        index:        Ordinal position in the chunk sequence.
        content:      Trimmed, non-empty chunk text.
        content_hash: SHA-256 of the content.
        metadata:     Informational context for logging, e.g. {"headings": "Intro"}.
                      Never persisted and never part of the vector payload.
    """

    index: int
    content: str
    content_hash: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_text(cls, index: int, text: str, metadata: dict[str, Any] | None = None) -> "ChunkCandidate":
        content = text.strip()
        return cls(
            index=index,
            content=content,
            content_hash=compute_content_hash(content),
            metadata=metadata or {},
        )


class ChunkDiff(BaseModel):
    """Result of comparing new candidates with the prior chunk set.

    to_embed and to_delete are disjoint: the first holds new candidates, the
    second existing rows.
    """

    to_embed: list[ChunkCandidate] = []
    to_delete: list[StoredChunk] = []
    unchanged: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.to_embed or self.to_delete)

    @property
    def summary(self) -> str:
        return f"to_embed={len(self.to_embed)}, to_delete={len(self.to_delete)}, unchanged={self.unchanged}"
