"""Package selector mini-language: ``name[:arch] [(op version)]`` with ``|`` alternation."""

import logging
import re
from enum import StrEnum

from pydantic import BaseModel, PrivateAttr

from aptresolve.version import Version, parse_version

logger = logging.getLogger(__name__)

_SELECTOR_RE = re.compile(
    r"\s*(?P<package>[a-z0-9+.-]+)"
    r"(?::(?P<architecture>[a-z0-9-]+))?"
    r"(?:\s*\(?(?P<op><=|>=|<<|>>|=)\s*(?P<version>(?:\d+:)?[a-zA-Z0-9.+~-]+)\)?)?"
    r"\s*"
)


class Op(StrEnum):
    LE = "<="
    GE = ">="
    LT = "<<"
    GT = ">>"
    EQ = "="


class Selector(BaseModel):
    """One alternative of a selector expression."""

    raw: str
    package: str
    architecture: str | None = None
    op: Op | None = None
    version: str | None = None

    _parsed_version: Version | None = PrivateAttr(default=None)
    _version_parsed: bool = PrivateAttr(default=False)

    @property
    def parsed_version(self) -> Version | None:
        if not self._version_parsed:
            self._parsed_version = parse_version(self.version)
            self._version_parsed = True
        return self._parsed_version

    @property
    def relation(self) -> str:
        """``<op><version>`` as shown for a placeholder, ``=any`` when unversioned."""
        return f"{self.op or Op.EQ}{self.version or 'any'}"

    def __str__(self) -> str:
        text = self.package
        if self.architecture:
            text += f":{self.architecture}"
        if self.op and self.version:
            text += f" ({self.op} {self.version})"
        return text


def parse_selector(text: str) -> Selector | None:
    """Parse a single alternative; returns None when it does not fit the grammar."""
    match = _SELECTOR_RE.fullmatch(text)
    if match is None:
        return None
    op = match["op"]
    return Selector(
        raw=text,
        package=match["package"],
        architecture=match["architecture"],
        op=Op(op) if op else None,
        version=match["version"],
    )


def parse_selectors(text: str, errors: list[str] | None = None) -> list[Selector]:
    """Split ``text`` on ``|`` and parse each alternative in order.

    Unparsable alternatives are dropped with a warning and, when ``errors`` is
    given, appended to it.
    """
    selectors = []
    for alternative in text.split("|"):
        selector = parse_selector(alternative)
        if selector is None:
            logger.warning(f"Dropping unparsable selector {alternative.strip()!r} in {text!r}")
            if errors is not None:
                errors.append(alternative)
            continue
        selectors.append(selector)
    return selectors
