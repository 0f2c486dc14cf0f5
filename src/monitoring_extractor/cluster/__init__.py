"""Cluster access: load credentials and build API clients."""

from monitoring_extractor.cluster.session import ClusterSession, open_session

__all__ = [
    "ClusterSession",
    "open_session",
]
