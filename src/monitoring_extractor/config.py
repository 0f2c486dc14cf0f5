"""Configuration and environment for the extractor."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from monitoring_extractor.errors import ConfigError

DEFAULT_POD_NAME = "extractor"
DEFAULT_CONTAINER_NAME = "copy"
DEFAULT_IMAGE = "library/busybox:1.37.0"
DEFAULT_MOUNT_PATH = "/data"


class Settings(BaseSettings):
    """Extractor settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="EXTRACTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Target
    namespace: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("namespace", "NAMESPACE", "EXTRACTOR_NAMESPACE"),
        description="Namespace in which to deploy the extraction pod",
    )
    pvc_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("pvc_name", "PVC_NAME", "EXTRACTOR_PVC_NAME"),
        description="PVC name to mount and copy files from",
    )
    directory: Path = Field(
        ...,
        validation_alias=AliasChoices("directory", "DIRECTORY", "EXTRACTOR_DIRECTORY"),
        description="Local directory in which to export the collector files",
    )

    # Kubernetes
    kubeconfig: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("kubeconfig", "KUBECONFIG", "EXTRACTOR_KUBECONFIG"),
        description="Path to kubeconfig; uses in-cluster config or ~/.kube/config if unset",
    )
    context: str | None = Field(default=None, description="Kubernetes context to use")

    # Extraction pod
    pod_name: str = Field(default=DEFAULT_POD_NAME, min_length=1, description="Extraction pod name")
    unique_name: bool = Field(
        default=False,
        description="Suffix the pod name with a random token so concurrent runs do not collide",
    )
    container_name: str = Field(default=DEFAULT_CONTAINER_NAME, min_length=1)
    image: str = Field(default=DEFAULT_IMAGE, min_length=1, description="Idle container image")
    mount_path: str = Field(default=DEFAULT_MOUNT_PATH, description="Where the PVC is mounted in the pod")
    run_as_user: int = Field(default=1000, ge=1, description="Non-root UID of the extraction container")

    # Timing
    poll_interval: float = Field(default=2.0, gt=0, description="Seconds between readiness polls")
    ready_timeout: float = Field(default=120.0, gt=0, description="Seconds to wait for the pod to be ready")
    stream_tick: float = Field(
        default=1.0,
        gt=0,
        description="Seconds to block on the exec channel before re-checking cancellation",
    )

    def workload_name(self) -> str:
        """Return the pod name for this run."""
        if not self.unique_name:
            return self.pod_name
        return f"{self.pod_name}-{uuid.uuid4().hex[:8]}"


def get_settings(**overrides: Any) -> Settings:
    """Return validated settings; explicit overrides win over the environment."""
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return Settings(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"invalid configuration: {problems}") from None
