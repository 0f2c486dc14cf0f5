"""Error taxonomy for the extraction pipeline, one class per failing stage."""

from __future__ import annotations

from kubernetes.client.rest import ApiException


def _describe(cause: BaseException) -> str:
    """One-line rendering of an underlying error; API errors keep only status and reason."""
    if isinstance(cause, ApiException):
        # status 0 means no HTTP response, e.g. a failed websocket handshake
        return f"{cause.reason} ({cause.status})" if cause.status else str(cause.reason)
    return " ".join(str(cause).split())


class ExtractorError(Exception):
    """Base error: a message plus the namespace/workload it happened in."""

    exit_code = 1
    label = "extraction failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        namespace: str | None = None,
        workload: str | None = None,
    ) -> None:
        self.message = message or self.label
        self.namespace = namespace
        self.workload = workload
        super().__init__(self.message)

    def context(self) -> str:
        parts = []
        if self.namespace:
            parts.append(f"namespace={self.namespace}")
        if self.workload:
            parts.append(f"workload={self.workload}")
        return ", ".join(parts)

    def __str__(self) -> str:
        ctx = self.context()
        text = f"{self.message} ({ctx})" if ctx else self.message
        cause = self.__cause__
        if cause is not None:
            text = f"{text}: {_describe(cause)}"
        return text


class ConfigError(ExtractorError):
    """Settings are missing or invalid."""

    exit_code = 2
    label = "invalid configuration"


class AuthError(ExtractorError):
    """The cluster session could not be established."""

    exit_code = 3
    label = "could not load cluster credentials"


class CreateError(ExtractorError):
    """The extraction pod was rejected by the API server."""

    exit_code = 4
    label = "could not create extraction pod"


class ReadinessError(ExtractorError):
    """The pod status could not be read."""

    exit_code = 5
    label = "could not read extraction pod status"


class ReadinessTimeoutError(ReadinessError):
    """The pod did not report Ready before the deadline."""

    label = "extraction pod did not become ready in time"


class StreamError(ExtractorError):
    """The remote archive command failed or its channel broke."""

    exit_code = 6
    label = "remote archive command failed"

    def __init__(self, message: str | None = None, *, stderr: str = "", **kwargs) -> None:
        self.stderr = stderr
        super().__init__(message, **kwargs)

    def __str__(self) -> str:
        text = super().__str__()
        if self.stderr.strip():
            text = f"{text} [stderr: {' '.join(self.stderr.split())}]"
        return text


class ArchiveError(ExtractorError):
    """The archive stream was malformed or could not be written locally."""

    exit_code = 7
    label = "could not unpack archive"


class DeleteError(ExtractorError):
    """The extraction pod could not be deleted."""

    exit_code = 8
    label = "could not delete extraction pod"


class ExtractionCancelled(ExtractorError):
    """The run was cancelled while blocked on the cluster."""

    exit_code = 130
    label = "extraction cancelled"
