"""Data models for APT repository metadata and resolution results."""

import threading
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, computed_field

from aptresolve.selector import Selector, parse_selectors
from aptresolve.utils import try_parse_date
from aptresolve.version import Version, parse_version

# guards the one-time write of PackageRecord dependencies
_DEPENDENCIES_LOCK = threading.Lock()


class FileHash(BaseModel):
    """One ``hash size path`` row of a Release checksum table."""

    type: str
    hash: str
    size: int
    path: str


class Release(BaseModel):
    """Top-level Release file of a distribution."""

    origin: str | None = None
    label: str | None = None
    suite: str | None = None
    codename: str | None = None
    version: str | None = None
    date: str | None = None
    architectures: list[str] = Field(default_factory=list)
    components: list[str] = Field(default_factory=list)
    description: str | None = None
    hashes: list[FileHash] = Field(default_factory=list, repr=False)

    @computed_field
    @property
    def parsed_date(self) -> datetime | None:
        return try_parse_date(self.date)


class PackageRelease(BaseModel):
    """Per-index Release fragment shared by every package of one component/architecture."""

    version: str | None = None
    component: str | None = None
    origin: str | None = None
    label: str | None = None
    architecture: str | None = None
    description: str | None = None


class SourceEntry(BaseModel):
    """A ``deb``/``deb-src`` line from sources.list."""

    kind: Literal["deb", "deb-src"] = "deb"
    url: str
    distribution: str
    components: list[str] = Field(default_factory=list)
    architectures: list[str] | None = None
    options: dict[str, str] = Field(default_factory=dict, repr=False)

    def __str__(self) -> str:
        return " ".join([self.kind, self.url, self.distribution, *self.components])


class PackageRecord(BaseModel):
    """One package stanza from a Packages or Sources index."""

    package: str
    version: str = ""
    architecture: str | None = None
    source: str | None = None
    maintainer: str | None = None
    priority: str | None = None
    section: str | None = None
    filename: str | None = None
    size: int = 0
    hashes: dict[str, str] = Field(default_factory=dict, repr=False)
    description: str | None = Field(default=None, repr=False)
    depends: list[str] = Field(default_factory=list, repr=False)
    provides: list[str] = Field(default_factory=list, repr=False)
    repository: SourceEntry | None = Field(default=None, repr=False)
    metadata: PackageRelease | None = Field(default=None, repr=False)

    _parsed_version: Version | None = PrivateAttr(default=None)
    _version_parsed: bool = PrivateAttr(default=False)
    _parsed_provides: list[Selector] | None = PrivateAttr(default=None)
    _dependencies: list["ResolvedPackage"] | None = PrivateAttr(default=None)

    @property
    def parsed_version(self) -> Version | None:
        if not self._version_parsed:
            self._parsed_version = parse_version(self.version)
            self._version_parsed = True
        return self._parsed_version

    @property
    def parsed_provides(self) -> list[Selector]:
        """Provides entries parsed once; later edits to ``provides`` are not seen."""
        if self._parsed_provides is None:
            self._parsed_provides = [sel for item in self.provides for sel in parse_selectors(item)]
        return self._parsed_provides

    @property
    def dependencies(self) -> list["ResolvedPackage"] | None:
        """Resolved dependency subtree, or None until a recursive resolve fills it in."""
        return self._dependencies

    def set_dependencies(self, dependencies: list["ResolvedPackage"]) -> list["ResolvedPackage"]:
        """Store the dependency subtree unless one is already set; return the stored one."""
        with _DEPENDENCIES_LOCK:
            if self._dependencies is None:
                self._dependencies = dependencies
            return self._dependencies

    @property
    def key(self) -> tuple:
        """Stable identity of this record across the whole index."""
        repo = self.repository
        return (
            self.package,
            self.architecture,
            self.version,
            repo.url if repo else None,
            repo.distribution if repo else None,
            self.metadata.component if self.metadata else None,
        )


class MissingPackage(BaseModel):
    """Placeholder for a selector that matched nothing."""

    package: str
    version: str = "any"
    architecture: str = "missing"


class ResolvedPackage(BaseModel):
    """A record as reached through one particular selector."""

    model_config = ConfigDict(frozen=True)

    record: PackageRecord | MissingPackage
    selector: str

    @property
    def package(self) -> str:
        return self.record.package

    @property
    def version(self) -> str:
        return self.record.version

    @property
    def architecture(self) -> str | None:
        return self.record.architecture

    @property
    def missing(self) -> bool:
        return isinstance(self.record, MissingPackage)

    @property
    def dependencies(self) -> list["ResolvedPackage"]:
        if isinstance(self.record, MissingPackage):
            return []
        return self.record.dependencies or []


class ContentsIndex(BaseModel):
    """A Contents-<arch> file of one repository."""

    url: str
    distribution: str
    component: str | None = None
    architecture: str
    path: str


class ContentItem(BaseModel):
    """One ``path -> section/package`` hit from a Contents search."""

    index: ContentsIndex
    section: str
    package: str
    path: str


PackageRecord.model_rebuild()
