"""Cold extraction of OpenTelemetry Collector signal files from a Kubernetes volume."""

__version__ = "0.1.0"
