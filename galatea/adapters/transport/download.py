"""
HTTP download — fetch a URL to a local file.

A single blocking GET bounded by a timeout. The response body is
streamed to disk in chunks; a partially written file is removed when
anything goes wrong.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path

from galatea import __version__
from galatea.core.errors import InvalidSource, TransportError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192
_USER_AGENT = f"galatea/{__version__}"

# Decoded names must stay a single path component
_FORBIDDEN_NAME_CHARS = ("/", "\\", "\x00")


def file_name_from_url(url: str) -> str:
    """Return the trailing path segment of ``url``.

    Query strings and fragments are ignored; percent-escapes are decoded.

    Raises:
        InvalidSource: The URL has no trailing file name, or the decoded
            name contains a path separator or NUL.
    """
    if not url or not url.strip():
        raise InvalidSource("Invalid URL: empty")
    path = urllib.parse.urlsplit(url.strip()).path
    name = urllib.parse.unquote(path.rsplit("/", 1)[-1])
    if not name or name in (".", ".."):
        raise InvalidSource(f"Invalid URL: {url} (no file name in path)")
    if any(c in name for c in _FORBIDDEN_NAME_CHARS):
        raise InvalidSource(f"Invalid URL: {url} (file name {name!r} is not a plain name)")
    return name


def download_file(
    url: str,
    dest_dir: Path,
    timeout: float,
    log: logging.Logger | None = None,
) -> Path:
    """Download ``url`` into ``dest_dir`` and return the file path.

    Args:
        url: Source URL.
        dest_dir: Directory to write into (created if missing).
        timeout: Socket timeout in seconds for connect and each read.
        log: Logger to report through.

    Raises:
        InvalidSource: No file name can be derived from the URL.
        TransportError: Non-2xx response, network failure, or write failure.
    """
    log = log or logger
    file_name = file_name_from_url(url)

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise TransportError(
            f"Failed to create download directory {dest_dir}: {e}", cause=e
        ) from e

    file_path = dest_dir / file_name
    if not file_path.resolve().is_relative_to(dest_dir.resolve()):
        raise InvalidSource(f"Invalid URL: {url} (file name escapes {dest_dir})")
    log.info("Downloading %s to %s", url, file_path)

    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    downloaded = 0
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = resp.getcode()
            if status is not None and not 200 <= status < 300:
                raise TransportError(
                    f"HTTP error {status} downloading {url}", status_code=status
                )
            with open(file_path, "wb") as f:
                while True:
                    chunk = resp.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    downloaded += len(chunk)
    except TransportError:
        file_path.unlink(missing_ok=True)
        raise
    except urllib.error.HTTPError as e:
        file_path.unlink(missing_ok=True)
        raise TransportError(
            f"HTTP error {e.code} downloading {url}", status_code=e.code, cause=e
        ) from e
    except (urllib.error.URLError, OSError, ValueError) as e:
        # URLError covers DNS/connection failures; OSError covers socket
        # timeouts and local write errors; ValueError an unusable URL
        file_path.unlink(missing_ok=True)
        raise TransportError(f"Failed to download file from {url}: {e}", cause=e) from e

    log.debug("File downloaded to %s (%d bytes)", file_path, downloaded)
    return file_path
