"""Workload layer: the ephemeral pod that mounts the signals volume."""

from monitoring_extractor.workload.models import ExtractionWorkloadSpec, PodCondition, WorkloadStatus
from monitoring_extractor.workload.pod import (
    build_pod_manifest,
    create_workload,
    delete_workload,
    ephemeral_workload,
)
from monitoring_extractor.workload.readiness import await_ready, read_status

__all__ = [
    "ExtractionWorkloadSpec",
    "PodCondition",
    "WorkloadStatus",
    "build_pod_manifest",
    "create_workload",
    "delete_workload",
    "ephemeral_workload",
    "await_ready",
    "read_status",
]
