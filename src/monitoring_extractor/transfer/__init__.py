"""Transfer layer: stream the archive out of the pod and unpack it locally."""

from monitoring_extractor.transfer.executor import ExecStream, open_exec_stream, run_command
from monitoring_extractor.transfer.models import ArchiveEntry, EntryKind, UnpackSummary
from monitoring_extractor.transfer.unpacker import unpack

__all__ = [
    "ArchiveEntry",
    "EntryKind",
    "ExecStream",
    "UnpackSummary",
    "open_exec_stream",
    "run_command",
    "unpack",
]
