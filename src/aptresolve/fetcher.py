"""Metadata retrieval for APT repositories: download, cache, verify, decompress."""

import asyncio
import bz2
import gzip
import hashlib
import logging
import lzma
import re
from collections.abc import AsyncIterator
from enum import Enum
from os import utime
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

import aiofiles
import aiogzip
import httpx
from dateutil.parser import parse as parse_date

from aptresolve.constants import CACHE_DIR, FETCH_BACKOFF, FETCH_RETRIES, FETCH_TIMEOUT, HASH_PREFERENCE
from aptresolve.control import parse_control
from aptresolve.exceptions import FetchError, IntegrityError
from aptresolve.models import FileHash
from aptresolve.sources import AuthManager
from aptresolve.utils import try_parse_date

logger = logging.getLogger(__name__)

_COMPRESSED_SUFFIX_RE = re.compile(r"\.(gz|gzip|bz2|xz|lzma)$")


class SkipMode(str, Enum):
    """File download skip modes.
    FAST: Skip download if local file exists.
    CHECK: Check Last-Modified and Content-Length headers to decide.
    NONE: Always download.
    """

    FAST = "fast"
    CHECK = "check"
    NONE = "none"


def url_to_local_path(url: str, cache_dir: Path = CACHE_DIR) -> Path:
    """Convert a repository URL to a cache path that mirrors the source structure.

    Examples:
        >>> url_to_local_path("https://deb.debian.org/debian/dists/bookworm/Release", Path("cache"))
        PosixPath('cache/deb.debian.org/debian/dists/bookworm/Release')
    """
    parsed = urlsplit(url)
    host = parsed.hostname or ""
    if parsed.port:
        host = f"{host}_{parsed.port}"
    return cache_dir / host / parsed.path.lstrip("/")


def split_credentials(url: str) -> tuple[str, tuple[str, str] | None]:
    """Strip ``user:password@`` from a URL, returning the bare URL and the credentials."""
    parsed = urlsplit(url)
    if not parsed.username and not parsed.password:
        return url, None
    netloc = parsed.hostname or ""
    if parsed.port:
        netloc = f"{netloc}:{parsed.port}"
    bare = urlunsplit(parsed._replace(netloc=netloc))
    return bare, (parsed.username or "", parsed.password or "")


def strongest_hash(hashes: list[FileHash], path: str) -> FileHash | None:
    """The preferred digest listed for exactly ``path``."""
    listed = {item.type: item for item in hashes if item.path == path}
    for algorithm in HASH_PREFERENCE:
        if algorithm in listed:
            return listed[algorithm]
    return None


def find_item_hashes(hashes: list[FileHash], name: str) -> list[FileHash]:
    """Listed variants of ``name`` (plain or compressed), smallest first, one digest each."""
    paths = {
        item.path
        for item in hashes
        if item.path == name or (item.path.startswith(name) and _COMPRESSED_SUFFIX_RE.fullmatch(item.path[len(name) :]))
    }
    variants = [digest for path in paths if (digest := strongest_hash(hashes, path)) is not None]
    return sorted(variants, key=lambda item: (item.size, item.path))


def verify_digest(url: str, data: bytes, digest: FileHash) -> None:
    actual = hashlib.new(digest.type, data).hexdigest()
    if actual != digest.hash.lower():
        raise IntegrityError(url, digest.type, digest.hash, actual)


def decompress(data: bytes, name: str) -> bytes:
    """Decompress ``data`` according to the extension of ``name``."""
    suffix = Path(urlsplit(name).path).suffix.lower()
    match suffix:
        case ".gz" | ".gzip":
            return gzip.decompress(data)
        case ".bz2":
            return bz2.decompress(data)
        case ".xz" | ".lzma":
            return lzma.decompress(data)
        case _:
            return data


async def read_file(path: Path) -> bytes:
    async with aiofiles.open(path, "rb") as f:
        return await f.read()


async def write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".part")
    async with aiofiles.open(tmp_path, "wb") as f:
        await f.write(data)
    tmp_path.replace(path)


class MetadataSource:
    """Fetches repository metadata through an on-disk cache."""

    def __init__(
        self,
        cache_dir: Path = CACHE_DIR,
        skip_mode: SkipMode = SkipMode.CHECK,
        auth: AuthManager | None = None,
        retries: int = FETCH_RETRIES,
        timeout: float = FETCH_TIMEOUT,
        backoff: float = FETCH_BACKOFF,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the metadata source.

        Args:
            cache_dir: Root of the mirrored download cache
            skip_mode: When an existing cached file may be reused without a digest
            auth: Credentials looked up for URLs without embedded userinfo
            retries: Attempts per URL on transport errors and 5xx responses
            timeout: Per-request timeout in seconds
            backoff: Base delay in seconds, doubled after each failed attempt
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.cache_dir = cache_dir
        self.skip_mode = skip_mode
        self.auth = auth or AuthManager()
        self.retries = max(1, retries)
        self.timeout = timeout
        self.backoff = backoff
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(follow_redirects=True, timeout=self.timeout, transport=self.transport)

    def _auth_for(self, url: str) -> tuple[str, httpx.BasicAuth | None]:
        bare, credentials = split_credentials(url)
        if credentials is None and (entry := self.auth.find(bare)) is not None:
            credentials = (entry.username, entry.password)
        return bare, httpx.BasicAuth(*credentials) if credentials else None

    async def _is_fresh(self, client: httpx.AsyncClient, url: str, auth, local_path: Path) -> bool:
        if self.skip_mode == SkipMode.FAST:
            logger.debug(f"Skipping download, file already exists: {local_path}")
            return True
        if self.skip_mode == SkipMode.NONE:
            return False
        try:
            response = await client.head(url, auth=auth)
            response.raise_for_status()
            if last_modified := try_parse_date(response.headers.get("last-modified")):
                # allow a second for fs granularity
                if last_modified.timestamp() <= local_path.stat().st_mtime + 1:
                    logger.debug(f"Skipping download, local file mtime matches: {local_path}")
                    return True
            elif remote_size := response.headers.get("content-length"):
                if int(remote_size) == local_path.stat().st_size:
                    logger.debug(f"Skipping download, local file size matches remote: {local_path}")
                    return True
        except httpx.HTTPError as e:
            logger.warning(f"Unable to check remote mtime or size for {url}: {e}")
        return False

    async def _get(self, client: httpx.AsyncClient, url: str, auth) -> httpx.Response:
        last_error = ""
        for attempt in range(self.retries):
            if attempt:
                await asyncio.sleep(self.backoff * 2 ** (attempt - 1))
            try:
                response = await client.get(url, auth=auth)
            except httpx.TransportError as e:
                last_error = str(e) or type(e).__name__
                logger.warning(f"Attempt {attempt + 1}/{self.retries} for {url} failed: {last_error}")
                continue
            if response.status_code >= 500:
                last_error = f"HTTP {response.status_code}"
                logger.warning(f"Attempt {attempt + 1}/{self.retries} for {url} failed: {last_error}")
                continue
            if response.status_code >= 400:
                raise FetchError(url, f"HTTP {response.status_code}")
            return response
        raise FetchError(url, last_error)

    async def download(self, url: str, digest: FileHash | None = None) -> Path:
        """Make sure ``url`` is present in the cache and return its local path.

        Raises:
            FetchError: The file could not be downloaded
            IntegrityError: The downloaded bytes do not match ``digest``
        """
        bare, auth = self._auth_for(url)
        local_path = url_to_local_path(bare, self.cache_dir)
        existing = local_path.is_file()

        if existing and digest is not None:
            try:
                verify_digest(bare, await read_file(local_path), digest)
                logger.debug(f"Cached file matches {digest.type}: {local_path}")
                return local_path
            except IntegrityError:
                logger.debug(f"Cached file is stale: {local_path}")

        async with self._client() as client:
            if existing and digest is None and await self._is_fresh(client, bare, auth, local_path):
                return local_path
            try:
                response = await self._get(client, bare, auth)
            except FetchError:
                if existing and digest is None:
                    logger.warning(f"Using cached copy of {bare}")
                    return local_path
                raise

        data = response.content
        if digest is not None:
            verify_digest(bare, data, digest)
        await write_file(local_path, data)
        if last_modified := response.headers.get("last-modified"):
            remote_ts = parse_date(last_modified).timestamp()
            utime(local_path, (remote_ts, remote_ts))
        logger.debug(f"Downloaded {bare} to {local_path}")
        return local_path

    async def fetch_bytes(self, url: str, digest: FileHash | None = None) -> bytes:
        """Download (or reuse) ``url`` and return its decompressed content."""
        local_path = await self.download(url, digest)
        return decompress(await read_file(local_path), url)

    async def _fetch_variant(self, base: str, name: str, hashes: list[FileHash] | None):
        """Fetch the first retrievable variant of ``name``; returns (url, local path)."""
        variants = find_item_hashes(hashes, name) if hashes else []
        if not variants:
            url = f"{base}/{name}"
            return url, await self.download(url)

        last_error: FetchError | None = None
        for digest in variants:
            url = f"{base}/{digest.path}"
            try:
                return url, await self.download(url, digest)
            except FetchError as e:
                logger.warning(str(e))
                last_error = e
        raise FetchError(f"{base}/{name}", f"none of {len(variants)} listed variants could be retrieved") from last_error

    async def fetch_metadata(
        self,
        base: str,
        name: str,
        hashes: list[FileHash] | None = None,
    ) -> list[dict[str, str]]:
        """Fetch a control document and parse it into stanzas.

        Args:
            base: Directory URL, e.g. ``<repo>/dists/<dist>``
            name: Path below ``base`` without compression suffix, e.g. ``main/binary-amd64/Packages``
            hashes: Release checksum table used to pick and verify a variant

        Raises:
            FetchError: No variant could be retrieved
            ControlParseError: The document is malformed
        """
        url, local_path = await self._fetch_variant(base, name, hashes)
        text = decompress(await read_file(local_path), url).decode("utf-8", errors="replace")
        return parse_control(text)

    async def iter_lines(
        self,
        base: str,
        name: str,
        hashes: list[FileHash] | None = None,
    ) -> AsyncIterator[str]:
        """Stream the decompressed lines of a (possibly large) text file such as Contents."""
        url, local_path = await self._fetch_variant(base, name, hashes)
        if local_path.suffix == ".gz":
            async with aiogzip.AsyncGzipTextFile(local_path, encoding="utf-8", errors="ignore") as f:
                async for line in f:
                    yield line.rstrip("\n")
            return
        text = decompress(await read_file(local_path), url).decode("utf-8", errors="ignore")
        for line in text.splitlines():
            yield line
