"""End-to-end tests for a cold extraction run against fake cluster APIs."""

import threading
from unittest.mock import patch

import pytest
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError
from rich.console import Console

from conftest import SIGNALS_JSON, Dir, File, FakeWSClient, exec_frames, exit_status, make_pod, make_tar
from monitoring_extractor.cancel import CancelToken
from monitoring_extractor.errors import (
    ArchiveError,
    CreateError,
    ExtractionCancelled,
    ReadinessTimeoutError,
    StreamError,
)
from monitoring_extractor.pipeline import print_result, run_extraction

EXEC_WEBSOCKET = "monitoring_extractor.transfer.executor.exec_websocket"


def test_successful_run_writes_files_and_deletes_pod(settings, session, core):
    archive = make_tar([Dir("./"), Dir("./collector/"), File("./collector/signals-0001.json", SIGNALS_JSON)])
    ws = FakeWSClient(exec_frames(archive, chunk=512))

    with patch(EXEC_WEBSOCKET, return_value=ws) as exec_websocket:
        result = run_extraction(settings, session=session)

    assert (settings.directory / "collector" / "signals-0001.json").read_bytes() == SIGNALS_JSON
    assert exec_websocket.call_args.kwargs["command"] == ["tar", "cf", "-", "-C", "/data", "."]
    assert core.created[0].spec.volumes[0].persistent_volume_claim.claim_name == "signals-pvc"
    assert core.deleted == [("monitoring", "extractor")]
    assert ws.closed
    assert result.summary.files == 1
    assert result.pod_name == "extractor"


def test_empty_volume_succeeds_with_empty_directory(settings, session, core):
    ws = FakeWSClient(exec_frames(make_tar([Dir("./")])))

    with patch(EXEC_WEBSOCKET, return_value=ws):
        result = run_extraction(settings, session=session)

    assert settings.directory.is_dir()
    assert list(settings.directory.iterdir()) == []
    assert "empty" in result.report


def test_create_failure_needs_no_cleanup(settings, session, core):
    core.create_error = ApiException(status=409, reason="Conflict")

    with pytest.raises(CreateError):
        run_extraction(settings, session=session)

    assert core.deleted == []


def test_unreachable_api_on_create_raises_create_error(settings, session, core):
    core.create_error = MaxRetryError(None, "/api/v1/namespaces/monitoring/pods")

    with pytest.raises(CreateError, match="unreachable"):
        run_extraction(settings, session=session)

    assert core.deleted == []


def test_readiness_timeout_deletes_pod(settings, session, core):
    core.statuses = [make_pod(ready=False)]

    with patch(EXEC_WEBSOCKET) as exec_websocket:
        with pytest.raises(ReadinessTimeoutError):
            run_extraction(settings, session=session)

    exec_websocket.assert_not_called()
    assert core.deleted == [("monitoring", "extractor")]


def test_stream_error_deletes_pod(settings, session, core):
    ws = FakeWSClient(exec_frames(make_tar([Dir("./")]), stderr=b"tar: read error\n", status=exit_status(1)))

    with patch(EXEC_WEBSOCKET, return_value=ws):
        with pytest.raises(StreamError, match="read error"):
            run_extraction(settings, session=session)

    assert core.deleted == [("monitoring", "extractor")]
    assert ws.closed


def test_archive_error_deletes_pod(settings, session, core):
    ws = FakeWSClient(exec_frames(b"not a tar archive" * 64))

    with patch(EXEC_WEBSOCKET, return_value=ws):
        with pytest.raises(ArchiveError):
            run_extraction(settings, session=session)

    assert core.deleted == [("monitoring", "extractor")]


def test_traversal_entry_aborts_and_deletes_pod(settings, session, core, tmp_path):
    ws = FakeWSClient(exec_frames(make_tar([File("../../escape.json", SIGNALS_JSON)])))

    with patch(EXEC_WEBSOCKET, return_value=ws):
        with pytest.raises(ArchiveError):
            run_extraction(settings, session=session)

    assert not (tmp_path / "escape.json").exists()
    assert core.deleted == [("monitoring", "extractor")]


def test_cancellation_while_waiting_for_ready_deletes_pod(settings, session, core):
    core.statuses = [make_pod(ready=False)]
    settings.ready_timeout = 10.0
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel, args=("SIGTERM",))

    timer.start()
    try:
        with patch(EXEC_WEBSOCKET) as exec_websocket:
            with pytest.raises(ExtractionCancelled, match="SIGTERM"):
                run_extraction(settings, cancel=token, session=session)
    finally:
        timer.cancel()

    exec_websocket.assert_not_called()
    assert core.reads >= 1
    assert core.deleted == [("monitoring", "extractor")]


def test_cancellation_mid_stream_deletes_pod(settings, session, core):
    token = CancelToken()
    ws = FakeWSClient([], stay_open=True)
    timer = threading.Timer(0.05, token.cancel, args=("SIGINT",))

    timer.start()
    try:
        with patch(EXEC_WEBSOCKET, return_value=ws):
            with pytest.raises(ExtractionCancelled):
                run_extraction(settings, cancel=token, session=session)
    finally:
        timer.cancel()

    assert core.deleted == [("monitoring", "extractor")]


def test_already_cancelled_run_creates_nothing(settings, session, core):
    token = CancelToken()
    token.cancel()

    with pytest.raises(ExtractionCancelled):
        run_extraction(settings, cancel=token, session=session)

    assert core.created == []


def test_unique_name_is_used_for_every_call(settings, session, core):
    settings.unique_name = True
    ws = FakeWSClient(exec_frames(make_tar([Dir("./")])))

    with patch(EXEC_WEBSOCKET, return_value=ws) as exec_websocket:
        result = run_extraction(settings, session=session)

    created = core.created[0].metadata.name
    assert created.startswith("extractor-") and created != "extractor"
    assert exec_websocket.call_args.args[1] == created
    assert core.deleted == [("monitoring", created)]
    assert result.pod_name == created


def test_print_result_renders_panel(settings, session, core):
    ws = FakeWSClient(exec_frames(make_tar([File("./collector/signals-0001.json", SIGNALS_JSON)])))
    with patch(EXEC_WEBSOCKET, return_value=ws):
        result = run_extraction(settings, session=session)

    console = Console(record=True, width=120)
    print_result(result, console)
    text = console.export_text()

    assert "signals-pvc" in text
    assert "37 bytes" in text
