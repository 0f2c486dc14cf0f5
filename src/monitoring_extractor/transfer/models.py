"""Structured models for archive entries recovered from the tar stream."""

from __future__ import annotations

import tarfile
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class EntryKind(str, Enum):
    """Entry kinds the unpacker distinguishes."""

    DIRECTORY = "directory"
    FILE = "file"
    OTHER = "other"


class ArchiveEntry(BaseModel):
    """One node of the archive, in stream order."""

    kind: EntryKind
    path: str = Field(..., description="Path relative to the archived volume root")
    size: int = Field(default=0, ge=0, description="Content length for regular files")

    @classmethod
    def from_tarinfo(cls, member: tarfile.TarInfo) -> ArchiveEntry:
        if member.isdir():
            kind = EntryKind.DIRECTORY
        elif member.isreg():
            kind = EntryKind.FILE
        else:
            kind = EntryKind.OTHER
        return cls(kind=kind, path=member.name, size=member.size if kind is EntryKind.FILE else 0)


@dataclass
class UnpackSummary:
    """Counters for one unpacking pass."""

    directories: int = 0
    files: int = 0
    skipped: int = 0
    bytes_written: int = 0
