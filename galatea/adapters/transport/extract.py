"""
Archive extraction — zip and gzip'd tar.

Entries are validated before anything is written: absolute paths,
``..`` components, and links pointing outside the destination are
rejected with ``ExtractError``.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

from galatea.core.errors import ExtractError

logger = logging.getLogger(__name__)

SCRIPT_MODE = 0o755

ZIP_SUFFIXES = (".zip",)
TAR_GZ_SUFFIXES = (".tar.gz", ".tgz")


def archive_format(file_name: str) -> str | None:
    """Return ``"zip"``, ``"tar.gz"``, or None for a non-archive name."""
    lowered = file_name.lower()
    if lowered.endswith(ZIP_SUFFIXES):
        return "zip"
    if lowered.endswith(TAR_GZ_SUFFIXES):
        return "tar.gz"
    return None


def _safe_target(dest_dir: Path, member_name: str) -> Path:
    """Resolve an archive member name under ``dest_dir`` or raise."""
    normalized = member_name.replace("\\", "/")
    member = PurePosixPath(normalized)
    if member.is_absolute() or normalized.startswith("/") or ".." in member.parts:
        raise ExtractError(f"Invalid file path in archive: {member_name!r}")
    if len(normalized) > 1 and normalized[1] == ":":
        raise ExtractError(f"Invalid file path in archive: {member_name!r}")

    root = dest_dir.resolve()
    target = (root / Path(*member.parts)).resolve() if member.parts else root
    if target != root and root not in target.parents:
        raise ExtractError(f"Archive entry escapes destination: {member_name!r}")
    return target


def extract_zip(archive_path: Path, dest_dir: Path, log: logging.Logger | None = None) -> None:
    """Extract every entry of a zip archive into ``dest_dir``.

    Regular files ending in ``.sh`` are made executable on POSIX.
    """
    log = log or logger
    log.debug("Extracting ZIP archive: %s", archive_path)

    try:
        zf = zipfile.ZipFile(archive_path)
    except (zipfile.BadZipFile, OSError) as e:
        raise ExtractError(f"Failed to parse ZIP file {archive_path}: {e}") from e

    with zf:
        infos = zf.infolist()
        targets = [(info, _safe_target(dest_dir, info.filename)) for info in infos]

        for info, target in targets:
            try:
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)

                if os.name == "posix" and target.suffix == ".sh":
                    os.chmod(target, SCRIPT_MODE)
            except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, RuntimeError) as e:
                # RuntimeError: encrypted entry without a password
                raise ExtractError(
                    f"Failed to extract {info.filename!r} from {archive_path}: {e}"
                ) from e

    log.debug("ZIP extraction completed")


def _check_tar_member(dest_dir: Path, member: tarfile.TarInfo) -> None:
    target = _safe_target(dest_dir, member.name)
    if member.isdev():
        raise ExtractError(f"Device entry not allowed in archive: {member.name!r}")
    if member.issym() or member.islnk():
        link = member.linkname.replace("\\", "/")
        if PurePosixPath(link).is_absolute():
            raise ExtractError(f"Absolute link in archive: {member.name!r} -> {link!r}")
        base = target.parent if member.issym() else dest_dir.resolve()
        resolved = (base / link).resolve()
        root = dest_dir.resolve()
        if resolved != root and root not in resolved.parents:
            raise ExtractError(f"Link escapes destination: {member.name!r} -> {link!r}")


def extract_tar_gz(archive_path: Path, dest_dir: Path, log: logging.Logger | None = None) -> None:
    """Gunzip and untar ``archive_path`` into ``dest_dir``."""
    log = log or logger
    log.debug("Extracting TAR.GZ archive: %s", archive_path)

    try:
        with tarfile.open(archive_path, "r:gz") as tf:
            members = tf.getmembers()
            for member in members:
                _check_tar_member(dest_dir, member)
            if hasattr(tarfile, "data_filter"):
                tf.extractall(dest_dir, members=members, filter="data")
            else:
                tf.extractall(dest_dir, members=members)
    except ExtractError:
        raise
    except (tarfile.TarError, EOFError, OSError) as e:
        # gzip.BadGzipFile is an OSError; FilterError is a TarError
        raise ExtractError(f"Failed to extract TAR.GZ file {archive_path}: {e}") from e

    log.debug("TAR.GZ extraction completed")


def extract_archive(archive_path: Path, dest_dir: Path, log: logging.Logger | None = None) -> Path:
    """Extract a recognised archive, or copy any other file verbatim.

    Returns:
        ``dest_dir``.
    """
    log = log or logger
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExtractError(f"Failed to create extraction directory {dest_dir}: {e}") from e

    log.info("Extracting %s to %s", archive_path, dest_dir)
    fmt = archive_format(archive_path.name)
    if fmt == "zip":
        extract_zip(archive_path, dest_dir, log)
    elif fmt == "tar.gz":
        extract_tar_gz(archive_path, dest_dir, log)
    else:
        copy_verbatim(archive_path, dest_dir / archive_path.name)
    return dest_dir


def copy_verbatim(src: Path, dest: Path) -> Path:
    """Copy a non-archive payload to ``dest``."""
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
    except OSError as e:
        raise ExtractError(f"Failed to copy file to {dest}: {e}") from e
    return dest
