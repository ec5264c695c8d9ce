import logging

import pytest

from aptresolve.sources import (
    AuthEntry,
    AuthManager,
    load_auth_conf,
    parse_auth_conf,
    parse_source_entries,
    parse_source_entry,
    parse_source_list_file,
)


def test_parse_deb_entry():
    entry = parse_source_entry("deb http://deb.debian.org/debian/ bookworm main contrib")
    assert entry.kind == "deb"
    assert entry.url == "http://deb.debian.org/debian"
    assert entry.distribution == "bookworm"
    assert entry.components == ["main", "contrib"]
    assert entry.architectures is None
    assert str(entry) == "deb http://deb.debian.org/debian bookworm main contrib"


def test_parse_entry_with_options():
    entry = parse_source_entry("deb-src [arch=amd64,arm64 trusted=yes] https://repo.example/apt stable main")
    assert entry.kind == "deb-src"
    assert entry.architectures == ["amd64", "arm64"]
    assert entry.options == {"arch": "amd64,arm64", "trusted": "yes"}


def test_entry_without_components():
    entry = parse_source_entry("deb http://repo.example stable")
    assert entry.components == []


@pytest.mark.parametrize("line", ["", "rpm http://x y", "deb", "deb http://only-url"])
def test_bad_entries_are_rejected(line, caplog):
    with caplog.at_level(logging.WARNING, logger="aptresolve.sources"):
        assert parse_source_entry(line) is None
    assert "Bad entry" in caplog.text


def test_parse_entries_skips_comments_and_bad_lines():
    entries = parse_source_entries(
        [
            "# comment",
            "",
            "deb http://a.example one main",
            "garbage",
            "  deb http://b.example two main  ",
        ]
    )
    assert [e.url for e in entries] == ["http://a.example", "http://b.example"]


def test_parse_source_list_file(tmp_path):
    path = tmp_path / "sources.list"
    path.write_text("deb http://a.example one main\n#deb http://b.example two main\n")
    assert [e.distribution for e in parse_source_list_file(path)] == ["one"]


def test_parse_auth_conf(tmp_path):
    path = tmp_path / "auth.conf"
    path.write_text(
        "# private mirror\n"
        "machine repo.example/private login alice password s3cret\n"
        "machine http://plain.example login bob password hunter2\n"
        "this line is junk\n"
    )
    assert load_auth_conf(path) == [
        AuthEntry(url="https://repo.example/private", username="alice", password="s3cret"),
        AuthEntry(url="http://plain.example", username="bob", password="hunter2"),
    ]


def test_parse_auth_conf_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="aptresolve.sources"):
        assert parse_auth_conf("machine x login y\n", warn=True) == []
    assert "Invalid auth.conf line" in caplog.text


def test_auth_manager_longest_prefix():
    manager = AuthManager(
        [
            AuthEntry(url="https://repo.example", username="general", password="p1"),
            AuthEntry(url="https://repo.example/private", username="special", password="p2"),
        ]
    )
    assert manager.find("https://repo.example/private/dists/x/Release").username == "special"
    assert manager.find("https://repo.example/public/dists/x/Release").username == "general"
    assert manager.find("http://repo.example/private") is None
    manager.add(AuthEntry(url="http://repo.example", username="plain", password="p3"))
    assert manager.find("http://repo.example/private").username == "plain"
