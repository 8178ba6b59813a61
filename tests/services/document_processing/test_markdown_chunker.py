"""Test cases for the structure-aware markdown chunker."""

import hashlib
import types

import pytest

from services.document_processing.chunking.MarkdownChunker import MarkdownChunker


def _sha(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _words(prefix: str, count: int) -> str:
    return " ".join(f"{prefix}{i}" for i in range(count))


class TestMarkdownChunker:
    """Test cases for MarkdownChunker."""

    @pytest.fixture
    def chunker(self):
        return MarkdownChunker()

    def test_iter_chunks_is_lazy(self, chunker):
        result = chunker.iter_chunks("# Title\n\nSome text.")
        assert isinstance(result, types.GeneratorType)

    def test_empty_content_yields_no_chunks(self, chunker):
        assert chunker.chunk("") == []
        assert chunker.chunk("   \n\n  ") == []

    def test_document_without_headings_is_one_chunk(self, chunker):
        content = "First paragraph.\n\nSecond paragraph."
        chunks = chunker.chunk(content)

        assert len(chunks) == 1
        assert chunks[0].content == "First paragraph.\n\nSecond paragraph."
        assert chunks[0].content_hash == _sha(chunks[0].content)
        assert chunks[0].metadata == {"headings": ""}
        assert chunks[0].index == 0

    def test_splits_at_second_level_headings(self, chunker):
        content = (
            "# Guide\n\nIntro text.\n\n"
            "## Install\n\nRun the installer.\n\n"
            "### Details\n\nMore details.\n\n"
            "## Usage\n\nCall the tool."
        )
        chunks = chunker.chunk(content)

        assert [c.content for c in chunks] == [
            "# Guide\n\nIntro text.",
            "## Install\n\nRun the installer.\n\n### Details\n\nMore details.",
            "## Usage\n\nCall the tool.",
        ]
        assert [c.metadata["headings"] for c in chunks] == ["", "Install", "Usage"]
        assert [c.index for c in chunks] == [0, 1, 2]

    def test_leading_heading_does_not_emit_empty_section(self, chunker):
        chunks = chunker.chunk("## Only\n\nBody text.")

        assert len(chunks) == 1
        assert chunks[0].content == "## Only\n\nBody text."
        assert chunks[0].metadata["headings"] == "Only"

    def test_container_blocks_keep_their_source(self, chunker):
        content = "## Lists\n\n- one\n- two\n\n> quoted\n\n```\ncode\n```"
        chunks = chunker.chunk(content)

        assert len(chunks) == 1
        assert "- one\n- two" in chunks[0].content
        assert "> quoted" in chunks[0].content
        assert "```\ncode\n```" in chunks[0].content

    def test_long_section_is_split_by_words(self):
        chunker = MarkdownChunker(max_words=10)
        content = "## Long\n\n" + _words("w", 23)
        chunks = chunker.chunk(content)

        # 2 heading words + 23 body words = 25 words
        assert [len(c.content.split()) for c in chunks] == [10, 10, 5]
        assert chunks[0].content.startswith("## Long w0")
        assert all(c.metadata["headings"] == "Long" for c in chunks)
        assert all(c.content_hash == _sha(c.content) for c in chunks)

    def test_section_at_limit_stays_verbatim(self):
        chunker = MarkdownChunker(max_words=4)
        chunks = chunker.chunk("alpha beta\n\ngamma delta")

        assert len(chunks) == 1
        assert chunks[0].content == "alpha beta\n\ngamma delta"

    def test_repeated_heading_document_splits_into_word_bounded_chunks(self, chunker):
        content = "# T\n\nHello world. " * 300
        chunks = chunker.chunk(content)

        # 1200 words -> 4 full chunks and a remainder of 176 words
        assert [len(c.content.split()) for c in chunks] == [256, 256, 256, 256, 176]
        assert all(c.content_hash == _sha(c.content) for c in chunks)
        # identical text hashes identically, different text differently
        assert len({c.content_hash for c in chunks}) == len({c.content for c in chunks}) == 2

    def test_multiple_long_sections_each_split(self, chunker):
        content = "\n\n".join(f"## Part {p}\n\n" + _words(f"p{p}x", 300) for p in range(3))
        chunks = chunker.chunk(content)

        assert len(chunks) == 6
        assert all(len(c.content.split()) <= 256 for c in chunks)
        assert len({c.content_hash for c in chunks}) == 6
        assert [c.metadata["headings"] for c in chunks] == ["Part 0", "Part 0", "Part 1", "Part 1", "Part 2", "Part 2"]

    def test_chunking_is_deterministic(self, chunker):
        content = "# A\n\n" + _words("a", 600) + "\n\n## B\n\nshort section"
        first = chunker.chunk(content)
        second = chunker.chunk(content)

        assert [c.model_dump() for c in first] == [c.model_dump() for c in second]

    def test_windows_line_endings_match_unix(self, chunker):
        unix = chunker.chunk("## A\n\ntext one\n\n## B\n\ntext two")
        windows = chunker.chunk("## A\r\n\r\ntext one\r\n\r\n## B\r\n\r\ntext two")

        assert [c.content_hash for c in unix] == [c.content_hash for c in windows]

    def test_changing_one_section_changes_only_its_hash(self, chunker):
        before = chunker.chunk("## A\n\nsame text\n\n## B\n\nold text")
        after = chunker.chunk("## A\n\nsame text\n\n## B\n\nnew text")

        assert before[0].content_hash == after[0].content_hash
        assert before[1].content_hash != after[1].content_hash

    def test_custom_split_level(self):
        chunker = MarkdownChunker(split_heading_level=1)
        chunks = chunker.chunk("# One\n\nfirst\n\n## Sub\n\nnested\n\n# Two\n\nsecond")

        assert [c.metadata["headings"] for c in chunks] == ["One", "Two"]

    @pytest.mark.parametrize("kwargs", [{"max_words": 0}, {"split_heading_level": 0}, {"split_heading_level": 7}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            MarkdownChunker(**kwargs)
