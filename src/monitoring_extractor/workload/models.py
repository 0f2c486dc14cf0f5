"""Structured models for the ephemeral extraction pod."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from monitoring_extractor.config import (
    DEFAULT_CONTAINER_NAME,
    DEFAULT_IMAGE,
    DEFAULT_MOUNT_PATH,
    DEFAULT_POD_NAME,
    Settings,
)

IDLE_COMMAND = ["/bin/sh", "-c", "--"]
IDLE_ARGS = ["while true; do sleep 30; done;"]

NOT_FOUND_PHASE = "NotFound"


class ExtractionWorkloadSpec(BaseModel):
    """Everything needed to describe the extraction pod for one run."""

    namespace: str
    name: str = DEFAULT_POD_NAME
    pvc_name: str = Field(..., description="Existing claim to mount; never created by the tool")
    container_name: str = DEFAULT_CONTAINER_NAME
    image: str = DEFAULT_IMAGE
    mount_path: str = DEFAULT_MOUNT_PATH
    volume_name: str = "data"
    run_as_user: int = Field(default=1000, ge=1)
    command: list[str] = Field(default_factory=lambda: list(IDLE_COMMAND))
    args: list[str] = Field(default_factory=lambda: list(IDLE_ARGS))

    @classmethod
    def from_settings(cls, settings: Settings, name: str | None = None) -> ExtractionWorkloadSpec:
        return cls(
            namespace=settings.namespace,
            name=name or settings.workload_name(),
            pvc_name=settings.pvc_name,
            container_name=settings.container_name,
            image=settings.image,
            mount_path=settings.mount_path,
            run_as_user=settings.run_as_user,
        )

    def archive_command(self) -> list[str]:
        """Archive the whole mounted volume root to standard output."""
        return ["tar", "cf", "-", "-C", self.mount_path, "."]


class PodCondition(BaseModel):
    """Pod condition summary."""

    type: str
    status: str
    reason: str | None = None
    message: str | None = None


class WorkloadStatus(BaseModel):
    """Phase and conditions of the extraction pod as last observed."""

    phase: str
    conditions: list[PodCondition] = Field(default_factory=list)

    @property
    def ready(self) -> bool:
        return any(c.type == "Ready" and c.status == "True" for c in self.conditions)

    @property
    def found(self) -> bool:
        return self.phase != NOT_FOUND_PHASE

    @classmethod
    def not_found(cls) -> WorkloadStatus:
        return cls(phase=NOT_FOUND_PHASE)

    @classmethod
    def from_pod(cls, pod: Any) -> WorkloadStatus:
        """Build WorkloadStatus from V1Pod."""
        status = getattr(pod, "status", None)
        conditions = [
            PodCondition(
                type=c.type or "",
                status=c.status or "",
                reason=getattr(c, "reason", None),
                message=getattr(c, "message", None),
            )
            for c in (getattr(status, "conditions", None) or [])
        ]
        return cls(phase=getattr(status, "phase", None) or "Unknown", conditions=conditions)

    def describe(self) -> str:
        waiting = [f"{c.type}={c.status}" + (f" ({c.reason})" if c.reason else "") for c in self.conditions]
        return f"phase={self.phase}" + (f", {', '.join(waiting)}" if waiting else "")
