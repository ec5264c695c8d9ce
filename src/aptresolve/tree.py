"""Dependency tree rendering."""

from collections.abc import Iterator

from rich.console import Console

from aptresolve.constants import DEFAULT_PACKAGE_FORMAT
from aptresolve.models import ResolvedPackage
from aptresolve.utils import Formatter

PACKAGE_FIELDS = {
    "package": lambda p: p.package,
    "version": lambda p: p.version,
    "architecture": lambda p: p.architecture,
    "selector": lambda p: p.selector,
    "source": lambda p: getattr(p.record, "source", None),
    "maintainer": lambda p: getattr(p.record, "maintainer", None),
    "priority": lambda p: getattr(p.record, "priority", None),
    "section": lambda p: getattr(p.record, "section", None),
    "filename": lambda p: getattr(p.record, "filename", None),
    "size": lambda p: getattr(p.record, "size", None),
    "description": lambda p: getattr(p.record, "description", None),
    "depends": lambda p: ", ".join(getattr(p.record, "depends", [])),
    "provides": lambda p: ", ".join(getattr(p.record, "provides", [])),
    **{
        f"hash.{algo}": (lambda p, algo=algo: getattr(p.record, "hashes", {}).get(algo))
        for algo in ("md5", "sha1", "sha256", "sha512")
    },
    **{
        f"metadata.{name}": (lambda p, name=name: getattr(getattr(p.record, "metadata", None), name, None))
        for name in ("version", "component", "origin", "label", "architecture", "description")
    },
    **{
        f"repository.{name}": (lambda p, name=name: getattr(getattr(p.record, "repository", None), name, None))
        for name in ("kind", "url", "distribution")
    },
}


def package_formatter(template: str = DEFAULT_PACKAGE_FORMAT) -> Formatter:
    return Formatter(template, PACKAGE_FIELDS)


def iter_dependency_tree(
    package: ResolvedPackage,
    template: str | Formatter = DEFAULT_PACKAGE_FORMAT,
    indent: int = 2,
    unique: bool = True,
) -> Iterator[str]:
    """Yield one formatted line per node, depth-first pre-order.

    A node already shown is not repeated. With ``unique`` disabled a node is only
    suppressed while its own subtree is being shown, so it may appear again in
    another branch.
    """
    formatter = template if isinstance(template, Formatter) else package_formatter(template)
    visited: set[str] = set()

    def walk(node: ResolvedPackage, depth: int) -> Iterator[str]:
        yield " " * (indent * depth) + formatter.format(node)
        for child in node.dependencies:
            node_id = f"{child.package}:{child.architecture}:{child.version}"
            if node_id in visited:
                continue
            visited.add(node_id)
            yield from walk(child, depth + 1)
            if not unique:
                visited.discard(node_id)

    yield from walk(package, 0)


def print_dependency_tree(
    package: ResolvedPackage,
    template: str | Formatter = DEFAULT_PACKAGE_FORMAT,
    indent: int = 2,
    unique: bool = True,
    console: Console | None = None,
) -> None:
    console = console or Console(highlight=False)
    for line in iter_dependency_tree(package, template, indent, unique):
        console.print(line, markup=False, highlight=False, soft_wrap=True)
