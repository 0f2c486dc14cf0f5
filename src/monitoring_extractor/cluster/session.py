"""Load in-cluster or kubeconfig-based credentials into a typed client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from kubernetes import client, config

from monitoring_extractor.errors import AuthError

logger = logging.getLogger(__name__)


@dataclass
class ClusterSession:
    """Connection config plus the Core API client built from it."""

    configuration: client.Configuration
    core: client.CoreV1Api


def _load_kube_config(kubeconfig_path: str | None, context: str | None) -> client.Configuration:
    """Load in-cluster or kubeconfig-based configuration."""
    if not kubeconfig_path and not context:
        try:
            config.load_incluster_config()
            logger.debug("Using in-cluster configuration")
            return client.Configuration.get_default_copy()
        except config.ConfigException:
            pass
    kwargs: dict[str, Any] = {}
    if kubeconfig_path:
        kwargs["config_file"] = str(kubeconfig_path)
    if context:
        kwargs["context"] = context
    config.load_kube_config(**kwargs)
    return client.Configuration.get_default_copy()


def open_session(kubeconfig: str | None = None, context: str | None = None) -> ClusterSession:
    """Authenticate against the cluster; any failure surfaces as AuthError."""
    try:
        cfg = _load_kube_config(kubeconfig, context)
    except (config.ConfigException, OSError, TypeError, ValueError) as e:
        raise AuthError(f"could not load kube config ({kubeconfig or 'default location'})") from e
    return ClusterSession(configuration=cfg, core=client.CoreV1Api(client.ApiClient(cfg)))
