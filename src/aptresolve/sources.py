"""sources.list entries and apt auth.conf credentials."""

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel

from aptresolve.models import SourceEntry

logger = logging.getLogger(__name__)

_ENTRY_RE = re.compile(r"(deb|deb-src)\s+(?:\[(.*?)\]\s*)?(\S+)\s+(\S+)(?:\s+(.+))?")
_AUTH_RE = re.compile(r"\s*machine\s+(?:(\S+)://)?(\S+)\s+login\s+(\S+)\s+password\s+(\S+)\s*")


def parse_source_entry(line: str) -> SourceEntry | None:
    """Parse one ``deb [opts] url dist [components...]`` line.

    Returns:
        The entry, or None (with a warning) if the line is malformed
    """
    match = _ENTRY_RE.fullmatch(line.strip())
    if match is None:
        logger.warning(f"Bad entry: {line!r}")
        return None
    kind, raw_options, url, distribution, components = match.groups()

    options: dict[str, str] = {}
    for token in (raw_options or "").split():
        name, _, value = token.partition("=")
        options[name] = value

    architectures = None
    if arch := options.get("arch"):
        architectures = [item.strip() for item in arch.split(",") if item.strip()]

    return SourceEntry(
        kind=kind,
        url=url.rstrip("/"),
        distribution=distribution.strip("/"),
        components=components.split() if components else [],
        architectures=architectures,
        options=options,
    )


def parse_source_entries(lines: Iterable[str]) -> list[SourceEntry]:
    """Parse entry lines, skipping blanks, ``#`` comments and malformed lines."""
    entries = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if (entry := parse_source_entry(line)) is not None:
            entries.append(entry)
    return entries


def parse_source_list_file(path: Path) -> list[SourceEntry]:
    return parse_source_entries(path.read_text(encoding="utf-8").splitlines())


class AuthEntry(BaseModel):
    """A ``machine ... login ... password ...`` credential."""

    url: str
    username: str
    password: str


def parse_auth_conf(text: str, warn: bool = False) -> list[AuthEntry]:
    """Parse apt auth.conf text. A machine without a scheme is taken as https."""
    entries = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        match = _AUTH_RE.fullmatch(line)
        if match is None:
            if warn:
                logger.warning(f"Invalid auth.conf line: {line!r}")
            continue
        scheme, location, username, password = match.groups()
        entries.append(AuthEntry(url=f"{scheme or 'https'}://{location}", username=username, password=password))
    return entries


def load_auth_conf(path: Path, warn: bool = False) -> list[AuthEntry]:
    return parse_auth_conf(path.read_text(encoding="utf-8"), warn=warn)


class AuthManager:
    """Credential lookup by longest matching URL prefix."""

    def __init__(self, entries: Iterable[AuthEntry] = ()):
        self.entries: list[AuthEntry] = list(entries)

    def add(self, entry: AuthEntry) -> None:
        self.entries.append(entry)

    def find(self, url: str) -> AuthEntry | None:
        matches = [entry for entry in self.entries if url.startswith(entry.url)]
        return max(matches, key=lambda entry: len(entry.url), default=None)
