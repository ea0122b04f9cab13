"""LSP-style positions and their mapping onto byte offsets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from terralsp.errors import InvalidPosError


@dataclass(frozen=True)
class Pos:
    """A zero-indexed position: line and UTF-16 column."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Range:
    """A span between two positions."""

    start: Pos
    end: Pos


@dataclass(frozen=True)
class Line:
    """One line of a source buffer, newline included, with its byte span."""

    content: bytes
    start_byte: int
    end_byte: int
    filename: str = ""


def make_source_lines(filename: str, content: bytes) -> list[Line]:
    """Split content into lines, followed by a trailing virtual empty line."""
    content = bytes(content)
    pieces = content.split(b"\n")
    chunks = [piece + b"\n" for piece in pieces[:-1]]
    if pieces[-1]:
        chunks.append(pieces[-1])

    lines = []
    offset = 0
    for chunk in chunks:
        lines.append(Line(chunk, offset, offset + len(chunk), filename))
        offset += len(chunk)
    lines.append(Line(b"", offset, offset, filename))
    return lines


def byte_offset_for_pos(lines: Sequence[Line], pos: Pos) -> int:
    """Return the byte offset in the whole buffer that the position refers to."""
    if pos.line < 0 or pos.line >= len(lines):
        raise InvalidPosError(pos)
    return _byte_offset_for_lsp_column(lines[pos.line], pos.column)


def _byte_offset_for_lsp_column(line: Line, column: int) -> int:
    # LSP columns count UTF-16 code units; the buffer is UTF-8. Offsets may
    # land inside a grapheme cluster but always at the start of a sequence.
    if column < 0:
        return line.start_byte

    byte_count = 0
    utf16_count = 0
    for char in line.content.decode("utf-8", "surrogateescape"):
        if utf16_count >= column:
            return line.start_byte + byte_count
        byte_count += len(char.encode("utf-8", "surrogateescape"))
        utf16_count += 2 if ord(char) > 0xFFFF else 1
    return line.end_byte