"""Logging setup and the per-run logger handed to each stage."""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Union

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "monitoring_extractor"


class RunLogger(logging.LoggerAdapter):
    """Logger bound to one extraction run; prefixes records with namespace/workload."""

    def __init__(self, logger: logging.Logger, namespace: str, workload: str) -> None:
        super().__init__(logger, {"namespace": namespace, "workload": workload})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return f"[{self.extra['namespace']}/{self.extra['workload']}] {msg}", kwargs


StageLogger = Union[logging.Logger, logging.LoggerAdapter]


def configure_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Install a Rich handler on the package logger and return it."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers = [handler]
    logger.propagate = False
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
