from abc import ABC, abstractmethod
from typing import Iterator

from shared.models.document import ChunkCandidate


class ChunkerInterface(ABC):
    """A chunking strategy turning document content into chunk candidates."""

    @abstractmethod
    def get_strategy_name(self) -> str:
        """
        Returns the identifier of the strategy. E.g. "structure_aware"
        """
        pass

    @abstractmethod
    def iter_chunks(self, content: str) -> Iterator[ChunkCandidate]:
        """
        Lazily yields the chunks of a document in order.

        Every yielded chunk has non-empty trimmed content, the SHA-256 of that
        content and an ordinal index counting from zero. The same content
        always yields the same sequence.

        Args:
            content (str): The raw document content.
        """
        pass

    def chunk(self, content: str) -> list[ChunkCandidate]:
        """
        Materialises iter_chunks() into a list.
        """
        return list(self.iter_chunks(content))
