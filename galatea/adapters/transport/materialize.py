"""
Archive transport — download a payload and lay it out on disk.

Flow:
    URL → <dest>/temp/<file> → extract (.zip/.tar.gz/.tgz) or copy → cleanup

Cleanup of the downloaded file and its temp directory never fails the
operation: problems there are logged and swallowed.
"""

from __future__ import annotations

import logging
from pathlib import Path

from galatea.adapters.transport.download import download_file, file_name_from_url
from galatea.adapters.transport.extract import copy_verbatim, extract_archive

logger = logging.getLogger(__name__)

TEMP_DIR_NAME = "temp"
CONFIG_SUFFIX = ".conf"
DEFAULT_TIMEOUT = 60


class ArchiveTransport:
    """Fetch-and-materialise service.

    Args:
        timeout: Download timeout in seconds.
        log: Logger to report through (default: module logger).
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, log: logging.Logger | None = None):
        self.timeout = timeout
        self._log = log or logger

    def fetch_and_materialize(self, url: str, destination_dir: Path) -> Path:
        """Download ``url`` and materialise it under ``destination_dir``.

        Returns:
            The ``.conf`` file path for configuration artifacts, otherwise
            ``destination_dir``.

        Raises:
            InvalidSource, TransportError, ExtractError.
        """
        destination_dir = Path(destination_dir)
        self._log.info("Fetching %s into %s", url, destination_dir)

        temp_dir = destination_dir / TEMP_DIR_NAME
        downloaded = download_file(url, temp_dir, self.timeout, self._log)

        try:
            if downloaded.name.endswith(CONFIG_SUFFIX):
                result = copy_verbatim(downloaded, destination_dir / downloaded.name)
                self._log.info("Config file copied to %s", result)
            else:
                result = extract_archive(downloaded, destination_dir, self._log)
                self._log.info("Payload materialised in %s", result)
        finally:
            self._cleanup(downloaded, temp_dir)

        return result

    def _cleanup(self, downloaded: Path, temp_dir: Path) -> None:
        try:
            downloaded.unlink(missing_ok=True)
        except OSError as e:
            self._log.warning("Failed to remove temporary file %s: %s", downloaded, e)

        try:
            if temp_dir.is_dir() and not any(temp_dir.iterdir()):
                temp_dir.rmdir()
        except OSError as e:
            self._log.warning("Failed to remove temporary directory %s: %s", temp_dir, e)


def fetch_and_materialize(
    url: str,
    destination_dir: Path,
    timeout: float = DEFAULT_TIMEOUT,
    log: logging.Logger | None = None,
) -> Path:
    """Module-level shortcut for ``ArchiveTransport(timeout).fetch_and_materialize``."""
    return ArchiveTransport(timeout, log).fetch_and_materialize(url, destination_dir)


def expected_artifact(url: str, destination_dir: Path) -> Path:
    """Path the payload of ``url`` occupies once materialised.

    ``.conf`` files land as ``<dest>/<file>``; everything else is
    represented by the destination directory itself.

    Raises:
        InvalidSource: No usable file name in ``url``.
    """
    file_name = file_name_from_url(url)
    if file_name.endswith(CONFIG_SUFFIX):
        return Path(destination_dir) / file_name
    return Path(destination_dir)
