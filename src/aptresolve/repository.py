"""Two-phase loading of APT repositories: Release metadata, then package indexes."""

import asyncio
import logging
import re

from aptresolve.control import split_list
from aptresolve.exceptions import FetchError
from aptresolve.fetcher import MetadataSource
from aptresolve.index import PackageIndex
from aptresolve.models import FileHash, PackageRecord, PackageRelease, Release, SourceEntry

logger = logging.getLogger(__name__)

_HASH_ROW_RE = re.compile(r"(\w+)\s+(\d+)\s+(.+)")

RELEASE_HASH_FIELDS = {
    "md5": "MD5Sum",
    "sha1": "SHA1",
    "sha256": "SHA256",
}
PACKAGE_HASH_FIELDS = {
    "md5": "MD5sum",
    "sha1": "SHA1",
    "sha256": "SHA256",
    "sha512": "SHA512",
}

# pseudo-architectures that never get a binary-<arch> index of their own
_NON_INDEX_ARCHITECTURES = {"all", "source"}


def parse_hash_table(algorithm: str, value: str | None) -> list[FileHash]:
    """Parse the ``hash size path`` rows of one Release checksum field."""
    rows = []
    for line in (value or "").splitlines():
        match = _HASH_ROW_RE.fullmatch(line.strip())
        if match is None:
            continue
        digest, size, path = match.groups()
        rows.append(FileHash(type=algorithm, hash=digest, size=int(size), path=path.strip()))
    return rows


def build_release(stanza: dict[str, str]) -> Release:
    hashes = [
        row
        for algorithm, field in RELEASE_HASH_FIELDS.items()
        for row in parse_hash_table(algorithm, stanza.get(field))
    ]
    return Release(
        origin=stanza.get("Origin"),
        label=stanza.get("Label"),
        suite=stanza.get("Suite"),
        codename=stanza.get("Codename"),
        version=stanza.get("Version"),
        date=stanza.get("Date"),
        architectures=split_list(stanza.get("Architectures"), " "),
        components=split_list(stanza.get("Components"), " "),
        description=stanza.get("Description"),
        hashes=hashes,
    )


def _safe_int(value: str | None) -> int:
    try:
        return int(value) if value not in (None, "") else 0
    except (TypeError, ValueError):
        return 0


def build_package_record(
    stanza: dict[str, str],
    entry: SourceEntry,
    metadata: PackageRelease,
) -> PackageRecord | None:
    """Map a Packages (or Sources) stanza onto a record; None if it names no package."""
    name = stanza.get("Package")
    if not name:
        return None

    if entry.kind == "deb-src":
        return PackageRecord(
            package=name,
            version=stanza.get("Version", ""),
            architecture="source",
            source=name,
            maintainer=stanza.get("Maintainer"),
            priority=stanza.get("Priority"),
            section=stanza.get("Section"),
            filename=stanza.get("Directory"),
            description=stanza.get("Description"),
            depends=split_list(stanza.get("Build-Depends")),
            repository=entry,
            metadata=metadata,
        )

    return PackageRecord(
        package=name,
        version=stanza.get("Version", ""),
        architecture=stanza.get("Architecture"),
        source=stanza.get("Source"),
        maintainer=stanza.get("Maintainer"),
        priority=stanza.get("Priority"),
        section=stanza.get("Section"),
        filename=stanza.get("Filename"),
        size=_safe_int(stanza.get("Size")),
        hashes={algo: stanza[field] for algo, field in PACKAGE_HASH_FIELDS.items() if field in stanza},
        description=stanza.get("Description"),
        depends=split_list(stanza.get("Depends")),
        provides=split_list(stanza.get("Provides")),
        repository=entry,
        metadata=metadata,
    )


class Repository:
    """One sources.list entry together with its loaded metadata."""

    def __init__(self, entry: SourceEntry):
        self.entry = entry
        self.release: Release | None = None
        self.records: list[PackageRecord] = []

    def __repr__(self):
        return f"<Repository {self.entry}>"

    @property
    def base_url(self) -> str:
        """URL of the ``dists/<distribution>`` directory."""
        return f"{self.entry.url}/dists/{self.entry.distribution}"

    @property
    def components(self) -> list[str]:
        """Requested components that the Release file actually declares."""
        release = self._require_release()
        return [item for item in self.entry.components if item in release.components]

    @property
    def architectures(self) -> list[str]:
        release = self._require_release()
        available = [item for item in release.architectures if item not in _NON_INDEX_ARCHITECTURES]
        if self.entry.architectures:
            return [item for item in self.entry.architectures if item in available]
        return available

    def index_paths(self) -> list[tuple[str, str | None]]:
        """``(component, architecture)`` pairs to load; architecture is None for sources."""
        if self.entry.kind == "deb-src":
            return [(component, None) for component in self.components]
        return [(component, arch) for component in self.components for arch in self.architectures]

    def _require_release(self) -> Release:
        if self.release is None:
            raise RuntimeError(f"Release metadata of {self.entry} is not loaded")
        return self.release

    async def load_release(self, source: MetadataSource) -> Release:
        """Phase one: fetch and parse ``dists/<distribution>/Release``."""
        stanzas = await source.fetch_metadata(self.base_url, "Release")
        if not stanzas:
            raise FetchError(f"{self.base_url}/Release", "empty Release file")
        self.release = build_release(stanzas[0])
        logger.info(
            f"Loaded Release for {self.entry.url} {self.entry.distribution}: "
            f"{len(self.release.components)} components, {len(self.release.architectures)} architectures"
        )
        return self.release

    async def _load_index_release(
        self,
        source: MetadataSource,
        directory: str,
        component: str,
        architecture: str,
    ) -> PackageRelease:
        release = self._require_release()
        fallback = PackageRelease(
            version=release.version,
            component=component,
            origin=release.origin,
            label=release.label,
            architecture=architecture,
            description=release.description,
        )
        try:
            stanzas = await source.fetch_metadata(self.base_url, f"{directory}/Release", release.hashes)
        except FetchError as e:
            logger.debug(f"No index Release for {directory}: {e}")
            return fallback
        if not stanzas:
            return fallback
        stanza = stanzas[0]
        return PackageRelease(
            version=stanza.get("Version", fallback.version),
            component=stanza.get("Component", component),
            origin=stanza.get("Origin", fallback.origin),
            label=stanza.get("Label", fallback.label),
            architecture=stanza.get("Architecture", architecture),
            description=stanza.get("Description", fallback.description),
        )

    async def _load_index(self, source: MetadataSource, component: str, architecture: str | None):
        release = self._require_release()
        if architecture is None:
            directory, name, architecture = f"{component}/source", "Sources", "source"
        else:
            directory, name = f"{component}/binary-{architecture}", "Packages"

        metadata = await self._load_index_release(source, directory, component, architecture)
        stanzas = await source.fetch_metadata(self.base_url, f"{directory}/{name}", release.hashes)
        records = [
            record
            for stanza in stanzas
            if (record := build_package_record(stanza, self.entry, metadata)) is not None
        ]
        logger.debug(f"Loaded {len(records)} packages from {self.base_url}/{directory}")
        return records

    async def load_indexes(self, source: MetadataSource) -> list[PackageRecord]:
        """Phase two: fetch every selected Packages/Sources index, in parallel."""
        results = await asyncio.gather(
            *(self._load_index(source, component, arch) for component, arch in self.index_paths())
        )
        self.records = [record for records in results for record in records]
        logger.info(f"Loaded {len(self.records)} packages from {self.entry}")
        return self.records


class RepositoryManager:
    """Manages loading APT repositories and merging them into one index."""

    def __init__(self, source: MetadataSource | None = None):
        self.source = source or MetadataSource()
        self.repositories: list[Repository] = []

    def create(self, entry: SourceEntry) -> Repository:
        repo = Repository(entry)
        self.add(repo)
        return repo

    def add(self, repo: Repository) -> "RepositoryManager":
        self.repositories.append(repo)
        return self

    def remove(self, repo: Repository) -> "RepositoryManager":
        self.repositories.remove(repo)
        return self

    async def load_releases(self) -> None:
        await asyncio.gather(*(repo.load_release(self.source) for repo in self.repositories))

    async def load_indexes(self) -> None:
        await asyncio.gather(*(repo.load_indexes(self.source) for repo in self.repositories))

    async def load(self) -> PackageIndex:
        """Load every repository and return the merged index, in registration order."""
        await self.load_releases()
        await self.load_indexes()
        return self.index()

    def index(self) -> PackageIndex:
        return PackageIndex(record for repo in self.repositories for record in repo.records)
