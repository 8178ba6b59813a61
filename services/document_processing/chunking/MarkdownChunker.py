"""Structure-aware chunker for markdown documents.

The document is parsed into CommonMark block tokens. Top-level blocks are
copied from the source, in order, into a section buffer. A heading at the
split level closes the current section and opens a new one labelled with
that heading. Sections longer than the word limit are cut into word-bounded
chunks. Every chunk carries its heading path as metadata, which only shows
up in debug logs.
"""

from typing import Iterator

from markdown_it import MarkdownIt
from markdown_it.token import Token

from services.document_processing.chunking.ChunkerInterface import ChunkerInterface
from shared.models.document import ChunkCandidate

DEFAULT_MAX_WORDS = 256
DEFAULT_SPLIT_HEADING_LEVEL = 2
HEADING_PATH_SEPARATOR = " > "


class MarkdownChunker(ChunkerInterface):
    """Splits markdown at headings of one level and limits chunks by word count."""

    def __init__(self, max_words: int = DEFAULT_MAX_WORDS, split_heading_level: int = DEFAULT_SPLIT_HEADING_LEVEL) -> None:
        if max_words < 1:
            raise ValueError(f"max_words must be >= 1, got {max_words}")
        if not 1 <= split_heading_level <= 6:
            raise ValueError(f"split_heading_level must be between 1 and 6, got {split_heading_level}")
        self.max_words = max_words
        self.split_heading_level = split_heading_level
        self._parser = MarkdownIt("commonmark")

    def get_strategy_name(self) -> str:
        return "structure_aware"

    ##########################################
    ############### SECTIONS #################
    ##########################################

    def _iter_sections(self, content: str) -> Iterator[tuple[str, list[str]]]:
        """Yield (section_text, heading_path) pairs in document order.

        A section holds the raw source of its top-level blocks, each followed
        by a blank line. The heading that opens a section belongs to it.
        """
        source = content.replace("\r\n", "\n").replace("\r", "\n")
        lines = source.split("\n")
        tokens = self._parser.parse(source)
        split_tag = f"h{self.split_heading_level}"

        buffer: list[str] = []
        headings: list[str] = []

        for position, token in enumerate(tokens):
            # only top-level openers and self-contained blocks
            if token.level != 0 or token.nesting < 0:
                continue

            if token.type == "heading_open" and token.tag == split_tag:
                if buffer:
                    yield "".join(buffer), headings
                buffer = []
                headings = [self._heading_text(tokens, position)]

            if not token.map:
                continue
            start, end = token.map
            buffer.append("\n".join(lines[start:end]))
            buffer.append("\n\n")

        if buffer:
            yield "".join(buffer), headings

    @staticmethod
    def _heading_text(tokens: list[Token], position: int) -> str:
        # heading_open is followed by its inline token
        if position + 1 < len(tokens) and tokens[position + 1].type == "inline":
            return tokens[position + 1].content.strip()
        return ""

    ##########################################
    ################ CHUNKS ##################
    ##########################################

    def _split_section(self, section: str) -> Iterator[str]:
        """Yield the chunk texts of one section.

        A section within the word limit is kept verbatim (trimmed). A longer one
        is packed greedily into chunks of max_words words joined by single
        spaces, plus a final partial chunk.
        """
        words = section.split()
        if not words:
            return
        if len(words) <= self.max_words:
            yield section.strip()
            return
        for start in range(0, len(words), self.max_words):
            yield " ".join(words[start:start + self.max_words])

    def iter_chunks(self, content: str) -> Iterator[ChunkCandidate]:
        index = 0
        for section, headings in self._iter_sections(content):
            metadata = {"headings": HEADING_PATH_SEPARATOR.join(headings)}
            for text in self._split_section(section):
                yield ChunkCandidate.from_text(index=index, text=text, metadata=metadata)
                index += 1
