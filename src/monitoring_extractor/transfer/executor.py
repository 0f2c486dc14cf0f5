"""Run a command inside the extraction container and stream its output back."""

from __future__ import annotations

import functools
import io
import json
import logging
from typing import Any

from kubernetes.client.rest import ApiException
from kubernetes.stream.ws_client import ERROR_CHANNEL, STDERR_CHANNEL, STDOUT_CHANNEL, websocket_call
from urllib3.exceptions import HTTPError
from websocket import WebSocketException

from monitoring_extractor.cancel import CancelToken
from monitoring_extractor.cluster import ClusterSession
from monitoring_extractor.errors import StreamError
from monitoring_extractor.logs import StageLogger

logger = logging.getLogger(__name__)

DEFAULT_TICK = 1.0


def _as_bytes(data: Any) -> bytes:
    if not data:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _exit_code(status: dict[str, Any]) -> int | None:
    """Pull the exit code out of a metav1.Status sent on the error channel."""
    for cause in (status.get("details") or {}).get("causes") or []:
        if cause.get("reason") == "ExitCode":
            try:
                return int(cause.get("message"))
            except (TypeError, ValueError):
                return None
    return None


class ExecStream(io.RawIOBase):
    """Standard output of one remote command as a read-only binary file.

    Standard error is captured on the side. ``finish()`` must be called once
    the output has been consumed to check how the remote command exited.
    """

    def __init__(
        self,
        ws_client: Any,
        namespace: str,
        pod_name: str,
        cancel: CancelToken | None = None,
        tick: float = DEFAULT_TICK,
        log: StageLogger = logger,
    ) -> None:
        super().__init__()
        self._ws = ws_client
        self.namespace = namespace
        self.pod_name = pod_name
        self._cancel = cancel or CancelToken()
        self._tick = tick
        self._log = log
        self._pending = bytearray()
        self._stderr = bytearray()
        self._status = bytearray()
        self._eof = False
        self.bytes_read = 0

    @property
    def stderr(self) -> bytes:
        return bytes(self._stderr)

    @property
    def stderr_text(self) -> str:
        return self._stderr.decode("utf-8", "replace")

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        while not self._pending and not self._eof:
            self._pump()
        n = min(len(buffer), len(self._pending))
        buffer[:n] = self._pending[:n]
        del self._pending[:n]
        self.bytes_read += n
        return n

    def _error(self, message: str) -> StreamError:
        return StreamError(message, stderr=self.stderr_text, namespace=self.namespace, workload=self.pod_name)

    def _pump(self) -> None:
        """Wait up to one tick for frames and sort them into stdout/stderr/status."""
        self._cancel.raise_if_cancelled(self.namespace, self.pod_name)
        try:
            if self._ws.is_open():
                self._ws.update(timeout=self._tick)
            else:
                self._eof = True
            for channel, sink in (
                (STDOUT_CHANNEL, self._pending),
                (STDERR_CHANNEL, self._stderr),
                (ERROR_CHANNEL, self._status),
            ):
                sink.extend(_as_bytes(self._ws.read_channel(channel, timeout=0)))
        except (WebSocketException, OSError) as e:
            raise self._error("exec channel transport error") from e

    def finish(self) -> int:
        """Discard unread output, wait for the channel to close and check the exit status."""
        drained = len(self._pending)
        self._pending.clear()
        while not self._eof:
            self._pump()
            drained += len(self._pending)
            self._pending.clear()
        if drained:
            self._log.debug("Discarded %d trailing bytes of output", drained)

        if not self._status:
            raise self._error("exec channel closed without an exit status")
        try:
            status = json.loads(self._status.decode("utf-8"))
        except ValueError as e:
            raise self._error("unreadable exit status on exec channel") from e
        if status.get("status") == "Success":
            return 0
        code = _exit_code(status)
        reason = status.get("message") or status.get("reason") or "unknown failure"
        if code is None:
            raise self._error(f"remote command failed: {reason}")
        raise self._error(f"remote command exited with code {code}")

    def close(self) -> None:
        if not self.closed:
            try:
                self._ws.close()
            except (WebSocketException, OSError) as e:
                self._log.debug("Ignoring error while closing exec channel: %s", e)
        super().close()


def exec_websocket(api_method: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a connect_* API method over a binary websocket that keeps no copy of the output.

    Works like ``kubernetes.stream.stream``, except that stream() builds the
    WSClient with capture_all on, which keeps every stdout/stderr byte for the
    whole call.
    """
    api_client = api_method.__self__.api_client
    previous = api_client.request
    api_client.request = functools.partial(
        websocket_call,
        api_client.configuration,
        binary=True,
        capture_all=False,
    )
    try:
        return api_method(*args, **kwargs)
    finally:
        api_client.request = previous


def open_exec_stream(
    session: ClusterSession,
    namespace: str,
    pod_name: str,
    container_name: str,
    command: list[str],
    cancel: CancelToken | None = None,
    log: StageLogger = logger,
    tick: float = DEFAULT_TICK,
) -> ExecStream:
    """Open one exec channel (no stdin, no TTY) running ``command`` in the container."""
    log.info("Running %s in %s/%s", " ".join(command), pod_name, container_name)
    try:
        ws_client = exec_websocket(
            session.core.connect_get_namespaced_pod_exec,
            pod_name,
            namespace,
            container=container_name,
            command=command,
            stdin=False,
            stdout=True,
            stderr=True,
            tty=False,
            _preload_content=False,
        )
    except (ApiException, HTTPError, WebSocketException, OSError) as e:
        raise StreamError("could not open exec channel", namespace=namespace, workload=pod_name) from e
    return ExecStream(ws_client, namespace, pod_name, cancel=cancel, tick=tick, log=log)


def run_command(
    session: ClusterSession,
    namespace: str,
    pod_name: str,
    container_name: str,
    command: list[str],
    cancel: CancelToken | None = None,
    log: StageLogger = logger,
    tick: float = DEFAULT_TICK,
) -> tuple[bytes, bytes]:
    """Run ``command`` to completion and return its buffered (stdout, stderr)."""
    with open_exec_stream(
        session, namespace, pod_name, container_name, command, cancel=cancel, log=log, tick=tick
    ) as out:
        stdout = out.read()
        out.finish()
        return stdout, out.stderr
