from typing import Iterator

from services.document_processing.chunking.ChunkerInterface import ChunkerInterface
from shared.models.document import ChunkCandidate


class WholeTextChunker(ChunkerInterface):
    """Keeps the whole trimmed content as a single chunk.

    Used for content without markup structure, e.g. source code.
    """

    def get_strategy_name(self) -> str:
        return "whole_text"

    def iter_chunks(self, content: str) -> Iterator[ChunkCandidate]:
        trimmed = content.strip()
        if trimmed:
            yield ChunkCandidate.from_text(index=0, text=trimmed)
