"""Parser for RFC822-style control stanzas (Release, Packages, Sources)."""

import logging

from aptresolve.exceptions import ControlParseError

logger = logging.getLogger(__name__)


def parse_control(text: str) -> list[dict[str, str]]:
    """Parse control text into one ``{field: value}`` mapping per stanza.

    Stanzas are separated by blank lines. A line starting with whitespace
    continues the previous field, joined with a newline; a continuation line
    holding a single ``.`` stands for an empty line. Field order is preserved.

    Args:
        text: Decompressed control document

    Returns:
        The stanzas in document order. Empty stanzas are not emitted.

    Raises:
        ControlParseError: A field line has no ``:`` separator.
    """
    stanzas: list[dict[str, str]] = []
    current: dict[str, str] = {}
    last_key: str | None = None

    for line_no, line in enumerate(text.split("\n"), start=1):
        line = line.rstrip("\r")
        if not line.strip():
            if current:
                stanzas.append(current)
                current = {}
            last_key = None
            continue

        if line[0].isspace():
            if last_key is None:
                logger.debug(f"Ignoring orphan continuation line {line_no}")
                continue
            value = line.strip()
            current[last_key] += "\n" if value == "." else "\n" + value
            continue

        key, sep, value = line.partition(":")
        if not sep:
            raise ControlParseError(line_no, len(line) + 1, ":")
        last_key = key.strip()
        current[last_key] = value.strip()

    if current:
        stanzas.append(current)
    return stanzas


def split_list(value: str | None, sep: str = ",") -> list[str]:
    """Split a comma- (or whitespace-) separated field into trimmed items."""
    if not value:
        return []
    parts = value.split() if sep.isspace() else value.split(sep)
    return [part.strip() for part in parts if part.strip()]
