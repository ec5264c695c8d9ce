"""aptresolve: APT repository metadata resolver."""

import logging

import httpx
from rich.console import Console
from rich.logging import RichHandler

from aptresolve.constants import LOG_LEVEL

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_suppress=[httpx],
        )
    ],
)
logging.getLogger("httpx").setLevel(logging.WARNING)

from aptresolve.control import parse_control  # noqa: E402
from aptresolve.index import PackageIndex, provides_of  # noqa: E402
from aptresolve.models import PackageRecord, ResolvedPackage, SourceEntry  # noqa: E402
from aptresolve.resolver import Resolver  # noqa: E402
from aptresolve.selector import Selector, parse_selector, parse_selectors  # noqa: E402
from aptresolve.version import Version, check_version, compare_versions, parse_version  # noqa: E402

__all__ = [
    "PackageIndex",
    "PackageRecord",
    "ResolvedPackage",
    "Resolver",
    "Selector",
    "SourceEntry",
    "Version",
    "check_version",
    "compare_versions",
    "parse_control",
    "parse_selector",
    "parse_selectors",
    "parse_version",
    "provides_of",
]
