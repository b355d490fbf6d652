"""Split file text into embedding chunks on whole-line boundaries."""

from __future__ import annotations

from dataclasses import dataclass

from codescope.index._internal.extraction.base import ExtractedSymbol


@dataclass(frozen=True, slots=True)
class Chunk:
    """A run of whole lines. Lines are 1-based and inclusive."""

    index: int
    content: str
    start_line: int
    end_line: int


def split_into_chunks(text: str, max_chars: int) -> list[Chunk]:
    """Greedily pack lines into chunks of at most max_chars.

    A chunk is closed before the line that would push it over the limit, so
    a single overlong line becomes a chunk of its own. Whitespace-only
    chunks are dropped and indices stay contiguous from 0.
    """
    chunks: list[Chunk] = []
    buffer: list[str] = []
    size = 0
    start_line = 1

    def flush(end_line: int) -> None:
        content = "\n".join(buffer)
        if content.strip():
            chunks.append(Chunk(len(chunks), content, start_line, end_line))

    for line_no, line in enumerate(text.splitlines(), start=1):
        added = len(line) + (1 if buffer else 0)
        if buffer and size + added > max_chars:
            flush(line_no - 1)
            buffer, size, start_line = [], 0, line_no
            added = len(line)
        buffer.append(line)
        size += added

    if buffer:
        flush(start_line + len(buffer) - 1)
    return chunks


def enclosing_symbol(chunk: Chunk, symbols: list[ExtractedSymbol]) -> int | None:
    """Position of the innermost symbol whose span contains the whole chunk."""
    best: int | None = None
    best_width = 0
    for position, symbol in enumerate(symbols):
        if not symbol.contains(chunk.start_line, chunk.end_line):
            continue
        width = symbol.end_line - symbol.start_line
        if best is None or width < best_width:
            best, best_width = position, width
    return best
