"""Poll the extraction pod until it reports Ready or the deadline passes."""

from __future__ import annotations

import logging
import time

from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from monitoring_extractor.cancel import CancelToken
from monitoring_extractor.cluster import ClusterSession
from monitoring_extractor.errors import ReadinessError, ReadinessTimeoutError
from monitoring_extractor.logs import StageLogger
from monitoring_extractor.workload.models import WorkloadStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_READY_TIMEOUT = 120.0


def read_status(session: ClusterSession, namespace: str, name: str) -> WorkloadStatus:
    """Fetch the pod once. A 404 is reported as NotFound, other API errors propagate."""
    try:
        pod = session.core.read_namespaced_pod(name=name, namespace=namespace)
    except ApiException as e:
        if e.status == 404:
            return WorkloadStatus.not_found()
        raise
    return WorkloadStatus.from_pod(pod)


def await_ready(
    session: ClusterSession,
    namespace: str,
    name: str,
    interval: float = DEFAULT_POLL_INTERVAL,
    deadline: float = DEFAULT_READY_TIMEOUT,
    cancel: CancelToken | None = None,
    log: StageLogger = logger,
) -> WorkloadStatus:
    """
    Re-read the full pod status every ``interval`` seconds until the Ready condition is True.

    A pod that is not found yet or has crashed counts as not ready; only the
    deadline ends the wait. Fetch errors are raised immediately.
    """
    token = cancel or CancelToken()
    started = time.monotonic()
    expires = started + deadline
    status = WorkloadStatus.not_found()
    last_phase: str | None = None
    log.info("Waiting for pod %s to be ready (timeout %.0fs)", name, deadline)

    while True:
        token.raise_if_cancelled(namespace, name)
        try:
            status = read_status(session, namespace, name)
        except (ApiException, HTTPError) as e:
            raise ReadinessError(namespace=namespace, workload=name) from e

        if status.ready:
            log.info("Pod %s is ready after %.1fs", name, time.monotonic() - started)
            return status
        if status.phase != last_phase:
            if status.phase in ("Failed", "Succeeded"):
                log.warning("Pod %s terminated (%s); it will not become ready", name, status.describe())
            else:
                log.debug("Pod %s not ready yet: %s", name, status.describe())
            last_phase = status.phase

        remaining = expires - time.monotonic()
        if remaining <= 0:
            raise ReadinessTimeoutError(
                f"extraction pod not ready after {deadline:g}s, last seen {status.describe()}",
                namespace=namespace,
                workload=name,
            )
        if token.wait(min(interval, remaining)):
            token.raise_if_cancelled(namespace, name)
