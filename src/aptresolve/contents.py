"""apt-file style search over Contents-<arch> indexes."""

import asyncio
import logging
import re

from aptresolve.constants import DEFAULT_CONTENTS_FORMAT
from aptresolve.fetcher import MetadataSource, find_item_hashes
from aptresolve.models import ContentItem, ContentsIndex
from aptresolve.repository import Repository
from aptresolve.utils import Formatter

logger = logging.getLogger(__name__)

CONTENTS_FIELDS = {
    "package": lambda item: item.package,
    "section": lambda item: item.section,
    "path": lambda item: item.path,
    "index.architecture": lambda item: item.index.architecture,
    "index.component": lambda item: item.index.component,
    "index.url": lambda item: item.index.url,
    "index.distribution": lambda item: item.index.distribution,
}


def contents_formatter(template: str = DEFAULT_CONTENTS_FORMAT) -> Formatter:
    return Formatter(template, CONTENTS_FIELDS)


def compile_pattern(text: str) -> re.Pattern[str]:
    """Build the line regex for a path pattern; ``^`` and ``$`` anchor it to the whole path."""
    begin = end = ".*"
    if text.endswith("$"):
        text, end = text[:-1], ""
    if text.startswith("^"):
        text, begin = text[1:], ""
    return re.compile(rf"^({begin}(?:{text}){end})\s+(\S+)\s*$")


def match_contents_line(line: str, pattern: re.Pattern[str], index: ContentsIndex) -> list[ContentItem]:
    match = pattern.match(line)
    if match is None:
        return []
    path, targets = match.groups()
    path = path.rstrip()
    items = []
    for target in targets.split(","):
        section, _, package = target.rpartition("/")
        items.append(ContentItem(index=index, section=section, package=package, path=path))
    return items


def contents_indexes(repo: Repository) -> list[ContentsIndex]:
    """Contents files listed in the repository's Release, component-scoped ones first."""
    if repo.release is None:
        raise RuntimeError(f"Release metadata of {repo.entry} is not loaded")
    indexes = []
    seen = set()
    for component in repo.components:
        for arch in repo.architectures:
            for name, scope in ((f"{component}/Contents-{arch}", component), (f"Contents-{arch}", None)):
                if name in seen or not find_item_hashes(repo.release.hashes, name):
                    continue
                seen.add(name)
                indexes.append(
                    ContentsIndex(
                        url=repo.entry.url,
                        distribution=repo.entry.distribution,
                        component=scope,
                        architecture=arch,
                        path=name,
                    )
                )
                break
    return indexes


async def _search_index(
    source: MetadataSource,
    repo: Repository,
    index: ContentsIndex,
    pattern: re.Pattern[str],
) -> list[ContentItem]:
    items = []
    async for line in source.iter_lines(repo.base_url, index.path, repo.release.hashes):
        items.extend(match_contents_line(line, pattern, index))
    logger.debug(f"{len(items)} matches in {repo.base_url}/{index.path}")
    return items


async def search_contents(
    source: MetadataSource,
    repositories: list[Repository],
    text: str,
) -> list[ContentItem]:
    """Find packages shipping paths that match ``text``.

    Release metadata must already be loaded. Results follow repository order,
    then index order, then file order.
    """
    pattern = compile_pattern(text)
    tasks = [
        _search_index(source, repo, index, pattern)
        for repo in repositories
        for index in contents_indexes(repo)
    ]
    results = await asyncio.gather(*tasks)
    return [item for items in results for item in items]
