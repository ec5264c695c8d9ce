import datetime
import logging
import re
from collections.abc import Callable, Mapping
from typing import Any

from dateutil.parser import parse as parse_date

from aptresolve.exceptions import FormatError

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"{\s*([\w.]+)\s*}")


def try_parse_date(date_str: str | None) -> datetime.datetime | None:
    """Try to parse a date string into a timestamp.

    Args:
        date_str: The date string to parse (e.g., the Date field of a Release file)

    Returns:
        The parsed timestamp, or None if parsing failed or date_str is None
    """

    try:
        return parse_date(date_str) if date_str else None
    except Exception as e:
        logger.debug(f"Failed to parse date '{date_str}': {e}")
        return None


class Formatter:
    """Render ``{name}`` / ``{dotted.name}`` templates through a fixed accessor table.

    Every placeholder is looked up when the template is compiled, so a typo in a
    user-supplied format fails before any output is produced.
    """

    def __init__(self, template: str, accessors: Mapping[str, Callable[[Any], Any]]):
        self.template = template
        self._parts: list[str | Callable[[Any], Any]] = []
        pos = 0
        for match in _PLACEHOLDER_RE.finditer(template):
            name = match.group(1)
            if name not in accessors:
                raise FormatError(f"Unknown field {name!r} in format {template!r}")
            self._parts.append(template[pos : match.start()])
            self._parts.append(accessors[name])
            pos = match.end()
        self._parts.append(template[pos:])

    def format(self, item: Any) -> str:
        out = []
        for part in self._parts:
            if isinstance(part, str):
                out.append(part)
                continue
            value = part(item)
            out.append("" if value is None else str(value))
        return "".join(out)
