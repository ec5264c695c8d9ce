"""In-memory package index: the flattened records of every loaded repository."""

import logging
from collections.abc import Iterable, Iterator

from aptresolve.models import PackageRecord
from aptresolve.selector import Selector

logger = logging.getLogger(__name__)


def provides_of(record: PackageRecord) -> list[Selector]:
    """Parsed Provides of ``record``, computed at most once per record."""
    return record.parsed_provides


class PackageIndex:
    """Ordered collection of package records.

    Lookups return records in insertion order; the name table is only a shortcut
    over the linear scan and never changes that order.
    """

    def __init__(self, records: Iterable[PackageRecord] = ()):
        self._records: list[PackageRecord] = list(records)
        self._by_name: dict[str, list[int]] | None = None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PackageRecord]:
        return iter(self._records)

    def __getitem__(self, pos: int) -> PackageRecord:
        return self._records[pos]

    def add(self, record: PackageRecord) -> None:
        self._records.append(record)
        self._by_name = None

    def extend(self, records: Iterable[PackageRecord]) -> None:
        self._records.extend(records)
        self._by_name = None

    def _build_name_table(self) -> dict[str, list[int]]:
        table: dict[str, list[int]] = {}
        for pos, record in enumerate(self._records):
            names = {record.package, *(sel.package for sel in provides_of(record))}
            for name in names:
                table.setdefault(name, []).append(pos)
        logger.debug(f"Indexed {len(self._records)} records under {len(table)} names")
        return table

    def lookup(self, name: str) -> list[PackageRecord]:
        """Records named ``name`` or providing ``name``, in index order."""
        if self._by_name is None:
            self._by_name = self._build_name_table()
        return [self._records[pos] for pos in self._by_name.get(name, ())]

    def find(self, package: str, architecture: str | None = None) -> list[PackageRecord]:
        """Records with exactly this package name, optionally of one architecture."""
        return [
            record
            for record in self.lookup(package)
            if record.package == package and (architecture is None or record.architecture == architecture)
        ]
