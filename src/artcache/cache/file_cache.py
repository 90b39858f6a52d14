"""
Content-addressed download cache.

Remote artifacts are stored under a name derived from the URL itself:
the SHA-1 of the URL followed by the alphanumeric characters of its last
path segment. The same URL always maps to the same file, so a file that
is already present is returned without touching the network.

Downloads are streamed into a temporary file next to the final one and
moved into place with os.replace(), so concurrent callers never observe
a partial artifact. Transient transport errors and 5xx responses are
retried with exponential backoff.
"""

from __future__ import annotations

import hashlib
import os
import re
import tempfile
from pathlib import Path, PurePosixPath
from types import TracebackType
from urllib.parse import urlparse

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from artcache import __version__
from artcache.exceptions import ConfigurationError, FetchError
from artcache.logging import get_logger, log_context

logger = get_logger(__name__)

FETCH_ATTEMPTS = 3
DEFAULT_TIMEOUT = 30.0

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def sanitize_name(name: str) -> str:
    """Strip every character that is not an ASCII letter or digit."""
    return _NON_ALNUM.sub("", name)


def content_addressed_name(url: str) -> str:
    """Derive the local file name for url.

    Example:
        ``.../file-sink-rabbit-1.2.0.RELEASE.jar`` becomes
        ``<sha1 of url>-filesinkrabbit120RELEASEjar``.
    """
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()
    base_name = PurePosixPath(urlparse(url).path).name
    return f"{digest}-{sanitize_name(base_name)}"


def _is_transient(exc: BaseException) -> bool:
    """Errors worth another attempt: transport failures and server errors.

    An unsupported URL scheme is a transport error that never recovers.
    """
    if isinstance(exc, httpx.UnsupportedProtocol):
        return False
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


class ContentAddressedFetcher:
    """Downloads URLs into a directory, at most one final file per URL.

    Safe to call from several threads, including for the same URL: each
    caller writes its own temporary file and the rename decides which copy
    ends up on disk.
    """

    def __init__(
        self,
        download_dir: str | Path,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            download_dir: Directory receiving downloaded artifacts. Created
                if missing; must be writable.
            client: Optional pre-configured HTTP client. When omitted the
                fetcher owns one and closes it in close().
            timeout: HTTP timeout in seconds for an owned client.
            user_agent: User-Agent header for an owned client.

        Raises:
            ConfigurationError: If the download directory cannot be used.
        """
        self.download_dir = Path(download_dir)
        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                "Download directory cannot be created",
                context={"download_dir": str(self.download_dir), "error": str(e)},
            ) from e
        if not os.access(self.download_dir, os.W_OK):
            raise ConfigurationError(
                "Download directory is not writable",
                context={"download_dir": str(self.download_dir)},
            )

        self._owns_client = client is None
        self._client = client or httpx.Client(
            headers={"User-Agent": user_agent or f"artifact-cache/{__version__}"},
            timeout=timeout,
            follow_redirects=True,
        )

    def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> ContentAddressedFetcher:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def local_path_for(self, url: str) -> Path:
        """Get the path where url is (or will be) cached."""
        return self.download_dir / content_addressed_name(url)

    def resolve(self, url: str) -> Path:
        """Return the local copy of url, downloading it first if absent.

        Args:
            url: HTTP(S) URL of the artifact.

        Returns:
            Path of the cached file.

        Raises:
            FetchError: If the download fails. No partial file is left behind.
        """
        target = self.local_path_for(url)
        if target.exists():
            logger.debug("Artifact already cached", url=url, path=str(target))
            return target

        with log_context(location=url, operation="fetch"):
            tmp_path: Path | None = None
            try:
                fd, tmp_name = tempfile.mkstemp(
                    dir=self.download_dir, prefix=f".{target.name}.", suffix=".part"
                )
                os.close(fd)
                tmp_path = Path(tmp_name)

                size = self._download(url, tmp_path)
                os.replace(tmp_path, target)
            except httpx.HTTPStatusError as e:
                raise FetchError(
                    f"Failed to fetch {url}",
                    context={"url": url, "status_code": e.response.status_code},
                ) from e
            except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
                raise FetchError(
                    f"Failed to fetch {url}",
                    context={"url": url, "error": str(e)},
                ) from e
            finally:
                if tmp_path is not None:
                    tmp_path.unlink(missing_ok=True)

            logger.info("Downloaded artifact", url=url, path=str(target), size=size)

        return target

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(FETCH_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    def _download(self, url: str, destination: Path) -> int:
        """Stream url into destination, truncating it first.

        Returns:
            Number of bytes written.
        """
        written = 0
        with self._client.stream("GET", url) as response:
            response.raise_for_status()
            with destination.open("wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)
                    written += len(chunk)
        return written
