from os import getenv
from pathlib import Path

# metadata cache root; mirrored <host>/<path> layout lives underneath
CACHE_DIR = Path(getenv("APTRESOLVE_CACHE_DIR", Path.home() / ".cache" / "aptresolve")).expanduser()

# last-resort preferred architecture when neither the selector nor its parent pins one
DEFAULT_ARCHITECTURE: str | None = getenv("APTRESOLVE_ARCH") or None

FETCH_RETRIES = int(getenv("APTRESOLVE_RETRIES", "3"))
FETCH_TIMEOUT = float(getenv("APTRESOLVE_TIMEOUT", "30"))
FETCH_BACKOFF = float(getenv("APTRESOLVE_BACKOFF", "0.5"))

AUTH_CONF: Path | None = Path(p) if (p := getenv("APTRESOLVE_AUTH_CONF")) else None

LOG_LEVEL = getenv("APTRESOLVE_LOG_LEVEL", "INFO").upper()

DEFAULT_PACKAGE_FORMAT = "{package}:{architecture} ({selector})"
DEFAULT_CONTENTS_FORMAT = "{package}:{index.architecture}: {path}"

# strongest first
HASH_PREFERENCE = ("sha256", "sha1", "md5")
