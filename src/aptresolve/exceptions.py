"""Exceptions raised by aptresolve."""


class AptResolveError(Exception):
    """Base class of most errors raised by this library."""

    def __repr__(self):
        """Represent the error."""
        return f"<{type(self).__module__}.{type(self).__name__} {self.args}>"

    @property
    def message(self) -> str:
        """Return the message passed as an argument."""
        return self.args[0] if self.args else ""


class ControlParseError(AptResolveError):
    """A control document is missing an expected delimiter."""

    def __init__(self, line: int, column: int, expected: str):
        self.line = line
        self.column = column
        self.expected = expected
        super().__init__(f"line {line}:{column}: expected {expected!r} not found")


class FetchError(AptResolveError):
    """A metadata document could not be retrieved."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}" + (f": {reason}" if reason else ""))


class IntegrityError(FetchError):
    """Downloaded bytes do not match the digest listed in the Release file."""

    def __init__(self, url: str, algorithm: str, expected: str, actual: str):
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual
        super().__init__(url, f"{algorithm} mismatch (expected {expected}, got {actual})")


class FormatError(AptResolveError):
    """A print template references a field that does not exist."""
