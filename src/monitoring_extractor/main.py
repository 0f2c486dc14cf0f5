"""CLI entrypoint for the monitoring extractor."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console

from monitoring_extractor import __version__
from monitoring_extractor.cancel import CancelToken, install_signal_handlers
from monitoring_extractor.config import get_settings
from monitoring_extractor.errors import ExtractorError
from monitoring_extractor.logs import configure_logging
from monitoring_extractor.pipeline import print_result, run_extraction


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="monitoring-extractor",
        description="Extract the Monitoring files from an OpenTelemetry Collector PVC.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--namespace",
        default=None,
        help="Namespace in which to deploy the extraction pod (env: NAMESPACE)",
    )
    parser.add_argument(
        "--pvc-name",
        default=None,
        help="PVC name to mount and copy files from (env: PVC_NAME)",
    )
    parser.add_argument(
        "--directory",
        type=Path,
        default=None,
        help="Directory in which to export the OpenTelemetry Collector files (env: DIRECTORY)",
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: in-cluster config, KUBECONFIG env or ~/.kube/config)",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Kubernetes context to use",
    )
    parser.add_argument(
        "--image",
        default=None,
        help="Image of the idle extraction container (env: EXTRACTOR_IMAGE)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the extraction pod to be ready (env: EXTRACTOR_READY_TIMEOUT)",
    )
    parser.add_argument(
        "--unique-name",
        action="store_true",
        default=None,
        help="Suffix the pod name with a random token so concurrent runs do not collide",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for monitoring-extractor CLI."""
    args = _parse_args(argv)
    configure_logging(verbose=args.verbose)

    cancel = CancelToken()
    install_signal_handlers(cancel)
    try:
        settings = get_settings(
            namespace=args.namespace,
            pvc_name=args.pvc_name,
            directory=args.directory,
            kubeconfig=args.kubeconfig,
            context=args.context,
            image=args.image,
            ready_timeout=args.timeout,
            unique_name=args.unique_name,
        )
        result = run_extraction(settings, cancel=cancel)
        print_result(result, Console())
        return 0
    except ExtractorError as e:
        if args.verbose:
            logging.getLogger("monitoring_extractor").exception("Extraction failed")
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("Error: interrupted", file=sys.stderr)
        return 130
    except Exception as e:
        logging.getLogger("monitoring_extractor").debug("Unexpected failure", exc_info=True)
        print(f"Error: {' '.join(str(e).split()) or type(e).__name__}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
