"""Orchestrator: create pod → await ready → stream + unpack → delete pod."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.filesize import decimal
from rich.markdown import Markdown
from rich.panel import Panel

from monitoring_extractor.cancel import CancelToken
from monitoring_extractor.cluster import ClusterSession, open_session
from monitoring_extractor.config import Settings
from monitoring_extractor.logs import PACKAGE_LOGGER, RunLogger
from monitoring_extractor.pipeline.reports import (
    REPORT_EMPTY,
    REPORT_HEADER,
    REPORT_SECTION_OUTPUT,
    REPORT_SECTION_SOURCE,
    REPORT_SKIPPED,
)
from monitoring_extractor.transfer import UnpackSummary, open_exec_stream, unpack
from monitoring_extractor.workload import ExtractionWorkloadSpec, await_ready, ephemeral_workload


@dataclass
class ExtractionResult:
    """Result of a successful extraction run."""

    namespace: str
    pvc_name: str
    pod_name: str
    directory: Path
    summary: UnpackSummary
    elapsed: float

    @property
    def report(self) -> str:
        parts = [
            REPORT_HEADER,
            REPORT_SECTION_SOURCE.format(namespace=self.namespace, pvc_name=self.pvc_name, pod_name=self.pod_name),
        ]
        if self.summary.files or self.summary.directories > 1:
            parts.append(
                REPORT_SECTION_OUTPUT.format(
                    files=self.summary.files,
                    size=decimal(self.summary.bytes_written),
                    directories=self.summary.directories,
                    directory=self.directory,
                    elapsed=self.elapsed,
                )
            )
        else:
            parts.append(REPORT_EMPTY.format(directory=self.directory))
        if self.summary.skipped:
            parts.append(REPORT_SKIPPED.format(skipped=self.summary.skipped))
        return "\n".join(parts)


def run_extraction(
    settings: Settings,
    cancel: CancelToken | None = None,
    session: ClusterSession | None = None,
) -> ExtractionResult:
    """
    Run one cold extraction. The pod is deleted on every exit path; any stage
    failure propagates as its ExtractorError subclass.
    """
    token = cancel or CancelToken()
    started = time.monotonic()
    spec = ExtractionWorkloadSpec.from_settings(settings)
    log = RunLogger(logging.getLogger(f"{PACKAGE_LOGGER}.run"), spec.namespace, spec.name)

    if session is None:
        session = open_session(
            kubeconfig=str(settings.kubeconfig) if settings.kubeconfig else None,
            context=settings.context,
        )
    token.raise_if_cancelled(spec.namespace, spec.name)

    with ephemeral_workload(session, spec, log):
        await_ready(
            session,
            spec.namespace,
            spec.name,
            interval=settings.poll_interval,
            deadline=settings.ready_timeout,
            cancel=token,
            log=log,
        )
        log.info("Copying files to %s", settings.directory)
        with open_exec_stream(
            session,
            spec.namespace,
            spec.name,
            spec.container_name,
            spec.archive_command(),
            cancel=token,
            log=log,
            tick=settings.stream_tick,
        ) as archive:
            summary = unpack(archive, settings.directory, log)
            archive.finish()
            if archive.stderr_text.strip():
                log.warning("tar reported: %s", archive.stderr_text.strip())

    return ExtractionResult(
        namespace=spec.namespace,
        pvc_name=spec.pvc_name,
        pod_name=spec.name,
        directory=settings.directory,
        summary=summary,
        elapsed=time.monotonic() - started,
    )


def print_result(result: ExtractionResult, console: Console | None = None) -> None:
    """Print extraction result to console using Rich."""
    c = console or Console()
    c.print(Panel(Markdown(result.report), title="Monitoring Extractor", border_style="green"))
