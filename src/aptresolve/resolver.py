"""Dependency resolution over a PackageIndex."""

import logging

from aptresolve.constants import DEFAULT_ARCHITECTURE
from aptresolve.index import PackageIndex, provides_of
from aptresolve.models import MissingPackage, PackageRecord, ResolvedPackage
from aptresolve.selector import Selector, parse_selectors
from aptresolve.version import check_version

logger = logging.getLogger(__name__)

ANY_ARCHITECTURE = "any"

# returned for an edge that points back at a package still being expanded
_IN_FLIGHT = object()


class Resolver:
    """Match selectors against an index and expand dependency trees.

    Matching is first-fit: selector alternatives are tried left to right,
    candidates in index order with the preferred architecture hoisted to the
    front, and the first candidate whose version (or one of whose Provides)
    satisfies the relation wins.
    """

    def __init__(self, index: PackageIndex, architecture: str | None = DEFAULT_ARCHITECTURE):
        """Initialize the resolver.

        Args:
            index: Fully loaded package index; it must not change while resolving
            architecture: Preferred architecture when neither a selector nor its parent pins one
        """
        self.index = index
        self.architecture = architecture

    def resolve(
        self,
        selector: str | Selector,
        recursive: bool = False,
        missing: bool = False,
    ) -> ResolvedPackage | None:
        """Resolve a selector expression to one package.

        Args:
            selector: Selector text (``|`` alternatives allowed) or a parsed selector
            recursive: Also resolve and attach the dependency tree of every match
            missing: Return a placeholder for an alternative nothing satisfies; the
                placeholder counts as a result, so later alternatives are not tried

        Returns:
            The matching package wrapped with the relation it was reached by, a
            placeholder, or None.
        """
        result = self._resolve(selector, set(), None, recursive, missing)
        return None if result is _IN_FLIGHT else result

    def candidates(self, selector: Selector, parent_architecture: str | None = None) -> list[PackageRecord]:
        """Records that could satisfy ``selector``, in the order they are tried."""
        preferred = selector.architecture or parent_architecture or self.architecture
        scope = selector.architecture or ANY_ARCHITECTURE

        found = [
            record
            for record in self.index.lookup(selector.package)
            if scope == ANY_ARCHITECTURE or record.architecture == preferred
        ]
        if scope == ANY_ARCHITECTURE and preferred:
            # stable partition: other architectures stay available as fallbacks
            found = [r for r in found if r.architecture == preferred] + [
                r for r in found if r.architecture != preferred
            ]
        return found

    @staticmethod
    def matches(record: PackageRecord, selector: Selector) -> bool:
        """Whether the record's own version, or one of its Provides, satisfies the selector."""
        wanted = selector.parsed_version
        if check_version(record.parsed_version, selector.op, wanted):
            return True
        return any(
            item.package == selector.package and check_version(item.parsed_version, selector.op, wanted)
            for item in provides_of(record)
        )

    def _resolve(self, selector, queue, parent_architecture, recursive, missing):
        if not selector:
            return None
        if isinstance(selector, Selector):
            selectors = [selector]
        else:
            selectors = parse_selectors(selector)

        for item in selectors:
            result = self._resolve_one(item, queue, item.architecture or parent_architecture, recursive, missing)
            if result is not None:
                return result
        return None

    def _resolve_one(self, selector, queue, parent_architecture, recursive, missing):
        record = next(
            (r for r in self.candidates(selector, parent_architecture) if self.matches(r, selector)),
            None,
        )
        if record is None:
            logger.debug(f"No package satisfies {selector}")
            return self._placeholder(selector) if missing else None

        key = record.key
        if key in queue:
            logger.debug(f"Skipping cyclic dependency on {record.package}")
            return _IN_FLIGHT

        if recursive and record.dependencies is None:
            if record.architecture == "all":
                architecture = parent_architecture
            else:
                architecture = record.architecture or parent_architecture
            queue.add(key)
            try:
                dependencies = []
                for item in record.depends:
                    dep = self._resolve(item, queue, architecture, recursive, missing)
                    if dep is not None and dep is not _IN_FLIGHT:
                        dependencies.append(dep)
                record.set_dependencies(dependencies)
            finally:
                queue.discard(key)

        return ResolvedPackage(record=record, selector=f"={record.version}")

    @staticmethod
    def _placeholder(selector: Selector) -> ResolvedPackage:
        record = MissingPackage(
            package=selector.package,
            version=selector.version or "any",
            architecture=selector.architecture or "missing",
        )
        return ResolvedPackage(record=record, selector=selector.relation)
