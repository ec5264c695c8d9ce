import itertools

import pytest
from debian.debian_support import version_compare

from aptresolve.version import (
    Version,
    check_version,
    compare_fragment,
    compare_versions,
    parse_version,
    satisfies,
)

# each entry sorts strictly below the next one
ORDERED = [
    "0.9~beta2-3ubuntu1",
    "1.0~~",
    "1.0~rc1",
    "1.0",
    "1.0-0.1",
    "1.0-1",
    "1.0-1.1",
    "1.0a",
    "1.0+dfsg-2",
    "1.0.1",
    "1.2.3-1~bpo11+1",
    "1.2.3-1",
    "1.10",
    "2.0",
    "7.4.052-1ubuntu3.1",
    "1:0.5",
    "2:1.0",
]


@pytest.mark.parametrize(
    "text, epoch, upstream, revision",
    [
        ("1.0", 0, "1.0", ""),
        ("1:0.5", 1, "0.5", ""),
        ("1.0-1", 0, "1.0", "1"),
        ("2:1.2.3-4ubuntu1", 2, "1.2.3", "4ubuntu1"),
        ("1.0-rc1-2", 0, "1.0-rc1", "2"),
        ("1.0~rc1+dfsg-0.1", 0, "1.0~rc1+dfsg", "0.1"),
        ("0", 0, "0", ""),
    ],
)
def test_parse_version(text, epoch, upstream, revision):
    parsed = parse_version(text)
    assert parsed == Version(raw=text, epoch=epoch, upstream=upstream, revision=revision)


@pytest.mark.parametrize("text", ["", None, "abc", "v1.0", ":1.0", "1.0 beta", "1:"])
def test_parse_version_rejects(text):
    assert parse_version(text) is None


def test_parse_is_deterministic():
    assert parse_version("3:4.5-6") == parse_version("3:4.5-6")


@pytest.mark.parametrize("text", ORDERED + ["0:1.0", "1.0-"])
def test_structured_round_trip(text):
    parsed = parse_version(text)
    again = parse_version(str(parsed))
    assert (again.epoch, again.upstream, again.revision) == (parsed.epoch, parsed.upstream, parsed.revision)


def test_fragment_lattice():
    """Tilde < end of string < alphanumerics < punctuation."""
    assert compare_fragment("~", "") == -1
    assert compare_fragment("", "a") == -1
    assert compare_fragment("a", ".") == -1
    assert compare_fragment("Z", "+") == -1
    assert compare_fragment("abc", "abd") == -1
    assert compare_fragment("", "") == 0
    assert compare_fragment(None, "") == 0


def test_fragment_numeric_runs():
    assert compare_fragment("10", "9") == 1
    assert compare_fragment("0010", "5") == 1
    assert compare_fragment("1.00", "1.0") == 0
    assert compare_fragment("1.2.10", "1.2.9") == 1


@pytest.mark.parametrize("text", ORDERED)
def test_compare_reflexive(text):
    v = parse_version(text)
    assert compare_versions(v, v) == 0


def test_compare_is_a_total_order_over_corpus():
    parsed = [parse_version(text) for text in ORDERED]
    for (i, x), (j, y) in itertools.product(enumerate(parsed), repeat=2):
        expected = (i > j) - (i < j)
        assert compare_versions(x, y) == expected, (x.raw, y.raw)
        assert compare_versions(y, x) == -expected


def test_agrees_with_python_debian():
    for x, y in itertools.product(ORDERED, repeat=2):
        ours = compare_versions(parse_version(x), parse_version(y))
        theirs = version_compare(x, y)
        assert ours == (theirs > 0) - (theirs < 0), (x, y)


@pytest.mark.parametrize(
    "x, op, y, expected",
    [
        ("1.0~rc1", "<<", "1.0", True),
        ("1:0.5", ">>", "2.0", True),
        ("1.0-1", "=", "1.0-1", True),
        ("1.0-1", "<=", "1.0-1", True),
        ("1.0-1", ">=", "1.0-2", False),
        ("2.0", "<<", "2.0", False),
        ("1.0", "=", "1.0-0", True),
    ],
)
def test_check_version(x, op, y, expected):
    assert check_version(parse_version(x), op, parse_version(y)) is expected


def test_check_version_is_permissive():
    """Unparsable or absent versions satisfy every relation."""
    assert check_version(parse_version("abc"), "<<", parse_version("abd")) is True
    assert check_version(None, ">>", parse_version("1.0")) is True
    assert check_version(parse_version("1.0"), "<<", None) is True
    assert check_version(parse_version("2.0"), None, parse_version("1.0")) is True


def test_satisfies_rejects_unknown_operator():
    with pytest.raises(ValueError):
        satisfies(0, "<")


def test_version_ordering_operators():
    assert parse_version("1.0~rc1") < parse_version("1.0")
    assert parse_version("1:0.1") > parse_version("9.9")
    assert sorted(parse_version(v) for v in reversed(ORDERED)) == [parse_version(v) for v in ORDERED]


@pytest.mark.parametrize(
    "x, y",
    [
        ("1.0", "1.00"),
        ("1.0", "1.0-0"),
        ("1.0", "1."),
        ("0:2.1-1", "2.1-01"),
        ("1.002a", "1.2a"),
    ],
)
def test_equal_versions_hash_alike(x, y):
    a, b = parse_version(x), parse_version(y)
    assert a == b
    assert a <= b and a >= b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1


def test_unequal_versions_stay_distinct():
    assert parse_version("1.0a") != parse_version("1.a")
    assert parse_version("1.0") != "1.0"
    assert len({parse_version(v) for v in ORDERED}) == len(ORDERED)
