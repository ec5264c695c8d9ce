import gzip
import hashlib

import httpx
import pytest

from aptresolve.fetcher import MetadataSource
from aptresolve.index import PackageIndex
from aptresolve.models import PackageRecord, PackageRelease, SourceEntry

ENTRY = SourceEntry(kind="deb", url="http://repo.example", distribution="stable", components=["main"])
REPO_BASE = "http://repo.example/dists/stable"

PACKAGES = """\
Package: app
Version: 1.0
Architecture: amd64
Maintainer: Example Developers <dev@example.org>
Depends: libfoo (>= 1.0), tool
Filename: pool/main/a/app/app_1.0_amd64.deb
Size: 1234
SHA256: 0123abcd
Description: example application
 An application used by the tests.

Package: libfoo
Version: 1.2
Architecture: amd64
Provides: libfoo-abi (= 1)

Package: tool-impl
Version: 0.5
Architecture: all
Provides: tool
"""

INDEX_RELEASE = """\
Archive: stable
Version: 12.1
Component: main
Origin: Example Index
Label: Example
Architecture: amd64
"""

CONTENTS = """\
usr/bin/app                                             main/app
usr/lib/x86_64-linux-gnu/libfoo.so.1                    libs/libfoo
usr/share/doc/app/README                                doc/app,main/app-doc
"""


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_record(package, version="1.0", architecture="amd64", depends=(), provides=(), component="main"):
    return PackageRecord(
        package=package,
        version=version,
        architecture=architecture,
        depends=list(depends),
        provides=list(provides),
        repository=ENTRY,
        metadata=PackageRelease(component=component, architecture=architecture),
    )


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def make_index():
    def _make(*records):
        return PackageIndex(records)

    return _make


def release_bytes(files, components="main", architectures="amd64"):
    """Top-level Release text listing ``files`` (paths below dists/<dist>) in a SHA256 table."""
    rows = "".join(f" {hashlib.sha256(data).hexdigest()} {len(data)} {path}\n" for path, data in files.items())
    return (
        "Origin: Example\n"
        "Label: Example\n"
        "Suite: stable\n"
        "Codename: example\n"
        "Version: 12.0\n"
        "Date: Sat, 10 Aug 2024 10:00:00 UTC\n"
        f"Architectures: {architectures}\n"
        f"Components: {components}\n"
        "Description: Example repository\n"
        f"SHA256:\n{rows}"
    ).encode()


@pytest.fixture
def repo_files():
    """URL -> body map of a small binary repository at http://repo.example, distribution stable."""
    listed = {
        "main/binary-amd64/Packages.gz": gzip.compress(PACKAGES.encode()),
        "main/binary-amd64/Release": INDEX_RELEASE.encode(),
        "main/Contents-amd64.gz": gzip.compress(CONTENTS.encode()),
    }
    files = {f"{REPO_BASE}/{path}": data for path, data in listed.items()}
    files[f"{REPO_BASE}/Release"] = release_bytes(listed, components="main contrib", architectures="amd64 all")
    return files


@pytest.fixture
def requests():
    return []


@pytest.fixture
def repo_source(tmp_path, repo_files, requests):
    """MetadataSource serving ``repo_files`` through a mock transport; requested URLs land in ``requests``."""

    def handler(request):
        requests.append(str(request.url))
        body = repo_files.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    return MetadataSource(cache_dir=tmp_path / "cache", transport=httpx.MockTransport(handler), backoff=0)
