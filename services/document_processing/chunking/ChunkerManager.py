import enum

from services.document_processing.chunking.ChunkerInterface import ChunkerInterface
from services.document_processing.chunking.MarkdownChunker import (
    DEFAULT_MAX_WORDS,
    DEFAULT_SPLIT_HEADING_LEVEL,
    MarkdownChunker,
)
from services.document_processing.chunking.WholeTextChunker import WholeTextChunker
from shared.helper.HelperConfig import HelperConfig


class ChunkingStrategy(str, enum.Enum):
    """Chunking strategies a document can be routed to."""

    STRUCTURE_AWARE = "structure_aware"
    WHOLE_TEXT = "whole_text"


DEFAULT_MARKDOWN_SUFFIXES = [".md", ".markdown"]


def classify_document(document_name: str, markdown_suffixes: list[str] | None = None) -> ChunkingStrategy:
    """Pick the chunking strategy for a document from its file name.

    Args:
        document_name (str): File name of the document, e.g. "README.md".
        markdown_suffixes (list[str] | None): Suffixes routed to the structure-aware
            strategy. Matching is case-insensitive.

    Returns:
        ChunkingStrategy: STRUCTURE_AWARE for markdown suffixes, WHOLE_TEXT otherwise.
    """
    suffixes = markdown_suffixes if markdown_suffixes is not None else DEFAULT_MARKDOWN_SUFFIXES
    suffix_strategies = {suffix.lower(): ChunkingStrategy.STRUCTURE_AWARE for suffix in suffixes}
    name = document_name.strip().lower()
    for suffix, strategy in suffix_strategies.items():
        if name.endswith(suffix):
            return strategy
    return ChunkingStrategy.WHOLE_TEXT


class ChunkerManager:
    """
    Holds one chunker per strategy and routes documents to them by name.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._markdown_suffixes = helper_config.get_list_val("CHUNK_MARKDOWN_SUFFIXES", default=DEFAULT_MARKDOWN_SUFFIXES)
        self._chunkers: dict[ChunkingStrategy, ChunkerInterface] = {
            ChunkingStrategy.STRUCTURE_AWARE: MarkdownChunker(
                max_words=helper_config.get_int_val("CHUNK_MAX_WORDS", default=DEFAULT_MAX_WORDS, minimum=1),
                split_heading_level=helper_config.get_int_val("CHUNK_SPLIT_HEADING_LEVEL", default=DEFAULT_SPLIT_HEADING_LEVEL, minimum=1),
            ),
            ChunkingStrategy.WHOLE_TEXT: WholeTextChunker(),
        }

    def register_chunker(self, strategy: ChunkingStrategy, chunker: ChunkerInterface) -> None:
        """
        Replaces the chunker used for a strategy.
        """
        self._chunkers[strategy] = chunker

    def get_chunker(self, document_name: str) -> ChunkerInterface:
        """
        Returns the chunker for a document.

        Args:
            document_name (str): File name of the document.

        Raises:
            ValueError: If no chunker is registered for the classified strategy.
        """
        strategy = classify_document(document_name, self._markdown_suffixes)
        chunker = self._chunkers.get(strategy)
        if chunker is None:
            raise ValueError(f"No chunker registered for strategy '{strategy.value}'.")
        self.logging.debug("Document '%s' routed to chunking strategy '%s'", document_name, strategy.value)
        return chunker
