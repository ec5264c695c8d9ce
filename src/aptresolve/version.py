"""Debian-style version parsing and ordering.

Versions are split into ``epoch:upstream-revision`` and compared field by
field. The string fields use the dpkg fragment ordering where ``~`` sorts
before the end of a string, which sorts before letters and digits, which sort
before any other punctuation.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict

_VERSION_RE = re.compile(r"(?:(\d+):)?([0-9][A-Za-z0-9.+~-]*?)(?:-([A-Za-z0-9.+~]*))?")

# punctuation sorts after every letter and digit
_OTHER_OFFSET = 256

_DIGITS_RE = re.compile(r"\d+")
# a final zero run compares equal to no digits at all
_TRAILING_ZERO_RE = re.compile(r"(?<!\d)0$")


class Version(BaseModel):
    """A parsed ``epoch:upstream-revision`` triple."""

    model_config = ConfigDict(frozen=True)

    raw: str
    epoch: int = 0
    upstream: str
    revision: str = ""

    def __str__(self) -> str:
        text = self.upstream
        if self.epoch:
            text = f"{self.epoch}:{text}"
        if self.revision:
            text = f"{text}-{self.revision}"
        return text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare_versions(self, other) == 0

    def __hash__(self) -> int:
        return hash((self.epoch, _canonical(self.upstream), _canonical(self.revision)))

    def __lt__(self, other: "Version") -> bool:
        return compare_versions(self, other) < 0

    def __le__(self, other: "Version") -> bool:
        return compare_versions(self, other) <= 0

    def __gt__(self, other: "Version") -> bool:
        return compare_versions(self, other) > 0

    def __ge__(self, other: "Version") -> bool:
        return compare_versions(self, other) >= 0


def parse_version(text: str | None) -> Version | None:
    """Parse a version string.

    Returns:
        The parsed version, or None when ``text`` is empty or not version-shaped
        (for example when the upstream part does not start with a digit).
    """
    if not text:
        return None
    match = _VERSION_RE.fullmatch(text)
    if match is None:
        return None
    epoch, upstream, revision = match.groups()
    return Version(raw=text, epoch=int(epoch or 0), upstream=upstream, revision=revision or "")


def _canonical(fragment: str) -> str:
    """Spelling of ``fragment`` shared by every string that compares equal to it."""
    text = _DIGITS_RE.sub(lambda m: str(int(m[0])), fragment)
    return text[:-1] if _TRAILING_ZERO_RE.search(text) else text


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_alpha(ch: str) -> bool:
    return "a" <= ch <= "z" or "A" <= ch <= "Z"


def _priority(ch: str) -> int:
    if not ch:
        return 0
    if ch == "~":
        return -1
    if _is_digit(ch) or _is_alpha(ch):
        return ord(ch)
    return ord(ch) + _OTHER_OFFSET


def compare_fragment(x: str | None, y: str | None) -> Literal[-1, 0, 1]:
    """Compare two upstream or revision strings with the dpkg lexical rules."""
    x = x or ""
    y = y or ""
    i = j = 0
    nx, ny = len(x), len(y)
    while i < nx or j < ny:
        while (i < nx and not _is_digit(x[i])) or (j < ny and not _is_digit(y[j])):
            px = _priority(x[i] if i < nx else "")
            py = _priority(y[j] if j < ny else "")
            if px != py:
                return -1 if px < py else 1
            i += 1
            j += 1

        cx = cy = 0
        while i < nx and _is_digit(x[i]):
            cx = cx * 10 + int(x[i])
            i += 1
        while j < ny and _is_digit(y[j]):
            cy = cy * 10 + int(y[j])
            j += 1
        if cx != cy:
            return -1 if cx < cy else 1
    return 0


def compare_versions(x: Version, y: Version) -> Literal[-1, 0, 1]:
    """Order two parsed versions: epoch, then upstream, then revision."""
    if x.epoch != y.epoch:
        return -1 if x.epoch < y.epoch else 1
    return compare_fragment(x.upstream, y.upstream) or compare_fragment(x.revision, y.revision)


def satisfies(result: int | None, op: str | None) -> bool:
    """Map a comparison result onto a relation operator.

    A missing result or operator means there is nothing to check.
    """
    if result is None or op is None:
        return True
    match op:
        case "<=":
            return result <= 0
        case ">=":
            return result >= 0
        case "<<":
            return result < 0
        case ">>":
            return result > 0
        case "=":
            return result == 0
        case _:
            raise ValueError(f"Unknown version relation: {op!r}")


def check_version(x: Version | None, op: str | None, y: Version | None) -> bool:
    """Check ``x op y``; unparsable or absent versions always satisfy."""
    if x is None or y is None:
        return True
    return satisfies(compare_versions(x, y), op)
