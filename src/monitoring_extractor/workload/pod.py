"""Create and delete the ephemeral pod that mounts the signals PVC."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from monitoring_extractor.cluster import ClusterSession
from monitoring_extractor.errors import CreateError, DeleteError
from monitoring_extractor.logs import StageLogger
from monitoring_extractor.workload.models import ExtractionWorkloadSpec

logger = logging.getLogger(__name__)


def build_pod_manifest(spec: ExtractionWorkloadSpec) -> client.V1Pod:
    """Describe an idle single-container pod with the PVC mounted and a restricted profile."""
    container = client.V1Container(
        name=spec.container_name,
        image=spec.image,
        command=list(spec.command),
        args=list(spec.args),
        volume_mounts=[
            client.V1VolumeMount(name=spec.volume_name, mount_path=spec.mount_path),
        ],
        # Matches the "restricted" pod security standard; reading a volume needs nothing more.
        security_context=client.V1SecurityContext(
            allow_privilege_escalation=False,
            capabilities=client.V1Capabilities(drop=["ALL"]),
            run_as_user=spec.run_as_user,
            run_as_non_root=True,
            seccomp_profile=client.V1SeccompProfile(type="RuntimeDefault"),
        ),
    )
    return client.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=client.V1ObjectMeta(name=spec.name, namespace=spec.namespace),
        spec=client.V1PodSpec(
            restart_policy="Never",
            containers=[container],
            volumes=[
                client.V1Volume(
                    name=spec.volume_name,
                    persistent_volume_claim=client.V1PersistentVolumeClaimVolumeSource(
                        claim_name=spec.pvc_name,
                    ),
                ),
            ],
        ),
    )


def create_workload(
    session: ClusterSession,
    spec: ExtractionWorkloadSpec,
    log: StageLogger = logger,
) -> client.V1Pod:
    """Submit the extraction pod. A name conflict (409) is fatal like any other rejection."""
    log.info("Creating pod %s (pvc=%s, image=%s)", spec.name, spec.pvc_name, spec.image)
    try:
        return session.core.create_namespaced_pod(namespace=spec.namespace, body=build_pod_manifest(spec))
    except (ApiException, HTTPError) as e:
        if isinstance(e, ApiException):
            detail = "pod already exists" if e.status == 409 else (e.reason or "API error")
        else:
            detail = "API server unreachable"
        raise CreateError(
            f"could not create extraction pod: {detail}",
            namespace=spec.namespace,
            workload=spec.name,
        ) from e


def delete_workload(
    session: ClusterSession,
    namespace: str,
    name: str,
    log: StageLogger = logger,
) -> None:
    """Delete the extraction pod; failures are raised, not swallowed."""
    log.info("Deleting pod %s", name)
    try:
        session.core.delete_namespaced_pod(name=name, namespace=namespace)
    except (ApiException, HTTPError) as e:
        raise DeleteError(namespace=namespace, workload=name) from e


@contextmanager
def ephemeral_workload(
    session: ClusterSession,
    spec: ExtractionWorkloadSpec,
    log: StageLogger = logger,
) -> Iterator[client.V1Pod]:
    """Create the pod and guarantee its deletion however the block exits.

    When the block raised, a deletion failure is logged and the original error
    wins; when the block succeeded, the DeleteError is raised.
    """
    pod = create_workload(session, spec, log)
    try:
        yield pod
    except BaseException:
        try:
            delete_workload(session, spec.namespace, spec.name, log)
        except DeleteError as cleanup_error:
            log.error("Pod %s left behind, delete it manually: %s", spec.name, cleanup_error)
        raise
    delete_workload(session, spec.namespace, spec.name, log)
