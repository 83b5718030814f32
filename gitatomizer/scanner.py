"""Word scanning and small string helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass

_WORD = re.compile(r"\S+")


def _byte_len(text):
    return len(text.encode("utf-8"))


@dataclass
class Scanner:
    """Walks through a text one whitespace-separated word at a time."""

    text: str
    position: int = 0

    def next_word(self):
        """Return the next word and advance past it, or None at the end."""
        match = _WORD.search(self.text, self.position)
        if match is None:
            return None
        self.position = match.end()
        return match.group()

    def __iter__(self):
        while (word := self.next_word()) is not None:
            yield word


def first_word_from_longer(s1, s2):
    """Take the next word from whichever scanner holds the longer text."""
    if _byte_len(s1.text) > _byte_len(s2.text):
        return s1.next_word()
    return s2.next_word()


def longest(s1, s2):
    """Return the longer string in UTF-8 bytes; the second wins a tie."""
    return s1 if _byte_len(s1) > _byte_len(s2) else s2


def first_word(s):
    """Return the first five bytes of s as text."""
    encoded = s.encode("utf-8")
    if len(encoded) < 5:
        raise ValueError(f"{s!r} is shorter than 5 bytes")
    try:
        return encoded[:5].decode("utf-8")
    except UnicodeDecodeError:
        raise ValueError("byte index 5 is not a character boundary") from None


def longest_with_announcement(x, y, ann):
    """Print the announcement and return x."""
    print(f"Announcement: {ann}")
    return x