"""
Line Tokenizer / Context Tracker

Walks the raw lines of one source file and yields a ScanLine per line with
its trimmed text, 1-based line number and the name of the most recently
declared function. A fresh tracker is created for every file, so function
context never leaks from one file into the next.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple


# `fn name`, optionally qualified: pub, pub(crate), const, async, unsafe, extern "C"
FUNCTION_DECLARATION = re.compile(
    r'^(?:pub(?:\s*\([^)]*\))?\s+)?'
    r'(?:(?:const|async|unsafe|default)\s+)*'
    r'(?:extern\s+"[^"]*"\s+)?'
    r'fn\s+([A-Za-z_][A-Za-z0-9_]*)'
)

PUBLIC_FUNCTION_DECLARATION = re.compile(r'^pub(?:\s*\([^)]*\))?\s+(?:(?:const|async|unsafe)\s+)*fn\s+')

DEFAULT_LOOKAHEAD = 3


@dataclass(frozen=True)
class ScanLine:
    """One trimmed source line plus its scanner context."""
    text: str
    line_number: int
    function_name: Optional[str] = None
    declares_function: bool = False

    @property
    def is_public_declaration(self) -> bool:
        return self.declares_function and bool(PUBLIC_FUNCTION_DECLARATION.match(self.text))


class LookaheadWindow:
    """
    Capped, read-only view over the trimmed lines following the current one.

    Near the end of a file the window simply holds fewer lines (possibly
    none); indexing past it is never an error for callers that iterate.
    """

    __slots__ = ("_lines",)

    def __init__(self, lines: Sequence[str] = ()):
        self._lines: Tuple[str, ...] = tuple(lines)

    @classmethod
    def following(cls, lines: Sequence[str], index: int, size: int = DEFAULT_LOOKAHEAD) -> "LookaheadWindow":
        """Window of up to *size* lines after position *index* (0-based)."""
        if size <= 0 or index < 0:
            return cls()
        return cls(lines[index + 1:index + 1 + size])

    def limit(self, size: int) -> "LookaheadWindow":
        return LookaheadWindow(self._lines[:max(size, 0)])

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    def __repr__(self) -> str:
        return f"LookaheadWindow({list(self._lines)!r})"


def extract_function_name(line: str) -> Optional[str]:
    """Return the declared function name if *line* (trimmed) declares one."""
    match = FUNCTION_DECLARATION.match(line)
    return match.group(1) if match else None


class ContextTracker:
    """One-shot iterator over a file's lines with function context."""

    def __init__(self, raw_lines: Sequence[str]):
        self._raw_lines = raw_lines
        self._position = 0
        self._current_function: Optional[str] = None

    @property
    def trimmed_lines(self) -> List[str]:
        return [line.strip() for line in self._raw_lines]

    def __iter__(self) -> Iterator[ScanLine]:
        return self

    def __next__(self) -> ScanLine:
        if self._position >= len(self._raw_lines):
            raise StopIteration

        text = self._raw_lines[self._position].strip()
        self._position += 1

        declared = extract_function_name(text)
        if declared:
            self._current_function = declared

        return ScanLine(
            text=text,
            line_number=self._position,
            function_name=self._current_function,
            declares_function=declared is not None,
        )
