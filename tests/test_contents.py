import pytest

from aptresolve.contents import (
    compile_pattern,
    contents_formatter,
    contents_indexes,
    match_contents_line,
    search_contents,
)
from aptresolve.models import ContentsIndex, Release
from aptresolve.repository import Repository
from conftest import ENTRY

INDEX = ContentsIndex(
    url="http://repo.example", distribution="stable", component="main", architecture="amd64", path="x"
)


@pytest.mark.parametrize(
    "text, path, expected",
    [
        ("bin/app", "usr/bin/app", True),
        ("bin/app", "usr/bin/apport", True),
        ("bin/app$", "usr/bin/apport", False),
        ("^usr/bin", "usr/bin/app", True),
        ("^bin", "usr/bin/app", False),
        ("^usr/bin/app$", "usr/bin/app", True),
        (r"lib.*\.so", "usr/lib/libfoo.so.1", True),
    ],
)
def test_compile_pattern(text, path, expected):
    assert bool(compile_pattern(text).match(f"{path}    utils/pkg")) is expected


def test_match_contents_line():
    line = "usr/share/doc/app/README                       doc/app,main/app-doc,non-free/x11/thing"
    items = match_contents_line(line, compile_pattern("README"), INDEX)
    assert [(item.section, item.package, item.path) for item in items] == [
        ("doc", "app", "usr/share/doc/app/README"),
        ("main", "app-doc", "usr/share/doc/app/README"),
        ("non-free/x11", "thing", "usr/share/doc/app/README"),
    ]
    assert match_contents_line(line, compile_pattern("nothing"), INDEX) == []


def test_contents_indexes_prefers_component_scope():
    repo = Repository(ENTRY.model_copy(update={"components": ["main", "contrib"]}))
    repo.release = Release(
        architectures=["amd64", "arm64"],
        components=["main", "contrib"],
        hashes=[
            {"type": "sha256", "hash": "a", "size": 1, "path": "main/Contents-amd64.gz"},
            {"type": "sha256", "hash": "b", "size": 1, "path": "Contents-arm64"},
        ],
    )
    indexes = contents_indexes(repo)
    assert [(item.component, item.architecture, item.path) for item in indexes] == [
        ("main", "amd64", "main/Contents-amd64"),
        (None, "arm64", "Contents-arm64"),
    ]


@pytest.mark.anyio
async def test_search_contents(repo_source):
    repo = Repository(ENTRY)
    await repo.load_release(repo_source)

    items = await search_contents(repo_source, [repo], "app")
    formatter = contents_formatter()
    assert [formatter.format(item) for item in items] == [
        "app:amd64: usr/bin/app",
        "app:amd64: usr/share/doc/app/README",
        "app-doc:amd64: usr/share/doc/app/README",
    ]
    assert await search_contents(repo_source, [repo], "^nothing$") == []


def test_contents_formatter_fields():
    formatter = contents_formatter("{index.url} {index.distribution} {index.component} {section}/{package}")
    [item] = match_contents_line("usr/bin/app  main/app", compile_pattern("app"), INDEX)
    assert formatter.format(item) == "http://repo.example stable main main/app"
