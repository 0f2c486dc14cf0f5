"""
Shared pytest fixtures for extractor tests.

This module provides in-memory stand-ins for the cluster:
- FakeCoreApi: records pod create/read/delete calls and replays scripted statuses
- FakeWSClient: replays exec channel frames the way kubernetes' WSClient exposes them
- make_tar: builds tar archives in memory
"""

from __future__ import annotations

import io
import json
import os
import tarfile
import time
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes.stream.ws_client import ERROR_CHANNEL, STDERR_CHANNEL, STDOUT_CHANNEL

from monitoring_extractor.cluster import ClusterSession
from monitoring_extractor.config import get_settings

SUCCESS_STATUS = json.dumps({"metadata": {}, "status": "Success"}).encode()


def exit_status(code: int) -> bytes:
    return json.dumps(
        {
            "metadata": {},
            "status": "Failure",
            "message": f"command terminated with non-zero exit code: exit code {code}",
            "reason": "NonZeroExitCode",
            "details": {"causes": [{"reason": "ExitCode", "message": str(code)}]},
        }
    ).encode()


# =============================================================================
# Kubernetes API fakes
# =============================================================================

def make_pod(phase: str = "Running", ready: bool = True) -> SimpleNamespace:
    conditions = [
        SimpleNamespace(type="PodScheduled", status="True", reason=None, message=None),
        SimpleNamespace(type="Ready", status="True" if ready else "False", reason=None, message=None),
    ]
    return SimpleNamespace(status=SimpleNamespace(phase=phase, conditions=conditions))


PENDING_POD = SimpleNamespace(status=SimpleNamespace(phase="Pending", conditions=None))


class FakeCoreApi:
    """CoreV1Api stand-in. ``statuses`` is replayed by read_namespaced_pod, the last item repeating."""

    def __init__(self, statuses: list[Any] | None = None) -> None:
        self.statuses = list(statuses if statuses is not None else [make_pod()])
        self.created: list[Any] = []
        self.deleted: list[tuple[str, str]] = []
        self.reads = 0
        self.create_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.connect_get_namespaced_pod_exec = MagicMock(name="connect_get_namespaced_pod_exec")

    def create_namespaced_pod(self, namespace: str, body: Any) -> Any:
        if self.create_error is not None:
            raise self.create_error
        self.created.append(body)
        return body

    def read_namespaced_pod(self, name: str, namespace: str) -> Any:
        self.reads += 1
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return item

    def delete_namespaced_pod(self, name: str, namespace: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append((namespace, name))


class FakeWSClient:
    """
    Replays exec frames. Each ``update`` delivers the next frame; once frames
    run out the channel closes. A frame is (channel, data), an Exception to
    raise, or None for a tick with no data.
    """

    def __init__(self, frames: list[Any], stay_open: bool = False) -> None:
        self.frames = list(frames)
        self.stay_open = stay_open
        self._channels: dict[int, bytes] = {}
        self._open = True
        self.closed = False

    def is_open(self) -> bool:
        return self._open

    def update(self, timeout: float = 0) -> None:
        if not self._open:
            return
        if not self.frames:
            if self.stay_open:
                time.sleep(timeout)
                return
            self._open = False
            return
        frame = self.frames.pop(0)
        if isinstance(frame, Exception):
            raise frame
        if frame is None:
            return
        channel, data = frame
        self._channels[channel] = self._channels.get(channel, b"") + data

    def read_channel(self, channel: int, timeout: float = 0) -> Any:
        return self._channels.pop(channel, "")

    def close(self) -> None:
        self.closed = True
        self._open = False


def stdout_frames(data: bytes, chunk: int = 100) -> list[tuple[int, bytes]]:
    return [(STDOUT_CHANNEL, data[i : i + chunk]) for i in range(0, len(data), chunk)]


def exec_frames(stdout: bytes, stderr: bytes = b"", status: bytes = SUCCESS_STATUS, chunk: int = 100) -> list[Any]:
    frames: list[Any] = stdout_frames(stdout, chunk)
    if stderr:
        frames.append((STDERR_CHANNEL, stderr))
    if status:
        frames.append((ERROR_CHANNEL, status))
    return frames


# =============================================================================
# Archives
# =============================================================================

@dataclass
class Entry:
    name: str
    data: bytes | None = None
    kind: bytes = tarfile.REGTYPE
    linkname: str = ""


def make_tar(entries: list[Entry]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=tarfile.GNU_FORMAT) as tar:
        for e in entries:
            info = tarfile.TarInfo(name=e.name)
            info.type = e.kind
            info.linkname = e.linkname
            if e.kind == tarfile.DIRTYPE:
                info.mode = 0o755
                tar.addfile(info)
            elif e.data is not None:
                info.size = len(e.data)
                tar.addfile(info, io.BytesIO(e.data))
            else:
                tar.addfile(info)
    return buf.getvalue()


def Dir(name: str) -> Entry:
    return Entry(name=name, kind=tarfile.DIRTYPE)


def File(name: str, data: bytes) -> Entry:
    return Entry(name=name, data=data)


def Symlink(name: str, target: str) -> Entry:
    return Entry(name=name, kind=tarfile.SYMTYPE, linkname=target)


SIGNALS_JSON = b'{"resourceSpans":[{"scopeSpans":[]}]}'


# =============================================================================
# Fixtures
# =============================================================================

ENV_VARS = ("NAMESPACE", "PVC_NAME", "DIRECTORY", "KUBECONFIG")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the developer's environment and any .env file out of settings."""
    for name in list(os.environ):
        if name in ENV_VARS or name.startswith("EXTRACTOR_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def core() -> FakeCoreApi:
    return FakeCoreApi()


@pytest.fixture
def session(core) -> ClusterSession:
    return ClusterSession(configuration=MagicMock(name="configuration"), core=core)


@pytest.fixture
def settings(tmp_path):
    return get_settings(
        namespace="monitoring",
        pvc_name="signals-pvc",
        directory=tmp_path / "out",
        poll_interval=0.01,
        ready_timeout=0.2,
        stream_tick=0.01,
    )
