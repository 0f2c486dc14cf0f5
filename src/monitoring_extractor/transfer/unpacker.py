"""Materialize a tar stream as directories and regular files under a local root."""

from __future__ import annotations

import logging
import os
import tarfile
from pathlib import Path, PurePosixPath
from typing import IO

from monitoring_extractor.errors import ArchiveError
from monitoring_extractor.logs import StageLogger
from monitoring_extractor.transfer.models import ArchiveEntry, EntryKind, UnpackSummary

logger = logging.getLogger(__name__)

DIR_MODE = 0o755
COPY_CHUNK = 64 * 1024


def resolve_entry_path(root: Path, name: str) -> Path:
    """Join ``name`` onto ``root``, rejecting anything that would land outside it."""
    rel = PurePosixPath(name)
    if rel.is_absolute() or ".." in rel.parts:
        raise ArchiveError(f"refusing archive entry outside destination: {name!r}")
    target = root.joinpath(*rel.parts).resolve()
    if target != root and root not in target.parents:
        raise ArchiveError(f"refusing archive entry outside destination: {name!r}")
    return target


def _copy_exact(src: IO[bytes], dst: IO[bytes], size: int, name: str) -> int:
    remaining = size
    while remaining:
        chunk = src.read(min(COPY_CHUNK, remaining))
        if not chunk:
            raise ArchiveError(f"archive entry {name!r} truncated: {size - remaining} of {size} bytes")
        dst.write(chunk)
        remaining -= len(chunk)
    return size


def unpack(stream: IO[bytes], destination: Path | str, log: StageLogger = logger) -> UnpackSummary:
    """
    Read tar entries from ``stream`` in order and recreate them under ``destination``.

    Directories and regular files are written; every other kind is skipped.
    Parents are created on demand since a file may arrive before its directory.
    """
    summary = UnpackSummary()
    try:
        os.makedirs(destination, mode=DIR_MODE, exist_ok=True)
        root = Path(destination).resolve()
        with tarfile.open(fileobj=stream, mode="r|") as tar:
            for member in tar:
                entry = ArchiveEntry.from_tarinfo(member)
                if entry.kind is EntryKind.OTHER:
                    log.debug("Skipping %s (unsupported entry type %r)", entry.path, member.type)
                    summary.skipped += 1
                    continue

                target = resolve_entry_path(root, entry.path)
                if entry.kind is EntryKind.DIRECTORY:
                    os.makedirs(target, mode=DIR_MODE, exist_ok=True)
                    summary.directories += 1
                    continue

                os.makedirs(target.parent, mode=DIR_MODE, exist_ok=True)
                src = tar.extractfile(member)
                if src is None:
                    raise ArchiveError(f"archive entry {entry.path!r} has no content")
                with open(target, "wb") as dst:
                    summary.bytes_written += _copy_exact(src, dst, entry.size, entry.path)
                summary.files += 1
                log.debug("Wrote %s (%d bytes)", target, entry.size)
    except tarfile.TarError as e:
        raise ArchiveError("malformed archive stream") from e
    except OSError as e:
        raise ArchiveError(f"could not write to {destination}") from e

    log.info(
        "Unpacked %d files (%d bytes) and %d directories into %s",
        summary.files,
        summary.bytes_written,
        summary.directories,
        destination,
    )
    return summary
