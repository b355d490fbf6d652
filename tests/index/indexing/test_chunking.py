"""Tests for whole-line chunking."""

from __future__ import annotations

from codescope.index._internal.extraction.base import ExtractedSymbol
from codescope.index._internal.indexing.chunking import Chunk, enclosing_symbol, split_into_chunks
from codescope.index.models import SymbolKind


def _symbol(name: str, start: int, end: int) -> ExtractedSymbol:
    return ExtractedSymbol(
        name=name,
        kind=SymbolKind.FUNCTION,
        start_line=start,
        end_line=end,
        start_column=1,
        end_column=1,
        definition="",
    )


class TestSplitIntoChunks:
    """Greedy line packing."""

    def test_empty_text(self) -> None:
        assert split_into_chunks("", 100) == []

    def test_small_text_is_one_chunk(self) -> None:
        assert split_into_chunks("a = 1\nb = 2\n", 100) == [Chunk(0, "a = 1\nb = 2", 1, 2)]

    def test_closes_before_overflowing_line(self) -> None:
        chunks = split_into_chunks("a\nb\nc", 3)
        assert chunks == [Chunk(0, "a\nb", 1, 2), Chunk(1, "c", 3, 3)]

    def test_overlong_line_is_its_own_chunk(self) -> None:
        chunks = split_into_chunks("ab\nabcdefghij\ncd", 5)
        assert [(c.content, c.start_line, c.end_line) for c in chunks] == [
            ("ab", 1, 1),
            ("abcdefghij", 2, 2),
            ("cd", 3, 3),
        ]

    def test_whitespace_chunks_dropped_indices_contiguous(self) -> None:
        chunks = split_into_chunks("a\n\n\n   \nb", 1)
        assert chunks == [Chunk(0, "a", 1, 1), Chunk(1, "b", 5, 5)]

    def test_chunks_cover_text_in_order(self) -> None:
        lines = [f"line_{i} = {i}" for i in range(40)]
        text = "\n".join(lines)
        chunks = split_into_chunks(text, 60)
        assert len(chunks) > 1
        assert "\n".join(c.content for c in chunks) == text
        assert all(len(c.content) <= 60 for c in chunks)
        assert [c.index for c in chunks] == list(range(len(chunks)))
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_line == previous.end_line + 1


class TestEnclosingSymbol:
    """Innermost symbol containing a whole chunk."""

    def test_innermost_wins(self) -> None:
        symbols = [_symbol("outer", 1, 10), _symbol("inner", 2, 5), _symbol("later", 4, 8)]
        assert enclosing_symbol(Chunk(0, "x", 3, 4), symbols) == 1

    def test_partial_overlap_is_not_containment(self) -> None:
        symbols = [_symbol("f", 1, 3)]
        assert enclosing_symbol(Chunk(0, "x", 2, 4), symbols) is None

    def test_no_symbols(self) -> None:
        assert enclosing_symbol(Chunk(0, "x", 1, 1), []) is None
