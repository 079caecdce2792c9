from __future__ import annotations

import threading

import httpx
import pytest

from exam_import.client.poller import (
    MAX_ATTEMPTS,
    ImportStatusPoller,
    StatusFetchError,
    wait_for_import,
)


def _scripted(responses: list[object]) -> tuple[httpx.Client, list[str]]:
    """Client that replays ``responses`` and then repeats the last one."""

    queue = list(responses)
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)

    return httpx.Client(transport=httpx.MockTransport(handler)), seen


def _status(status: str, **extra) -> dict:
    return {"id": "imp-1", "status": status, **extra}


def _poller(client: httpx.Client, **kwargs) -> ImportStatusPoller:
    return ImportStatusPoller("imp-1", base_url="http://api.test", http_client=client, interval=0, **kwargs)


def test_stops_when_ready_for_review():
    client, seen = _scripted(
        [
            _status("processing", progress=50),
            _status("processing", progress=50),
            _status("ready_for_review", progress=100, questionsFound=5, lessonsFound=2),
        ]
    )

    outcome = _poller(client).run()

    assert outcome.state == "ready"
    assert (outcome.questions_found, outcome.lessons_found) == (5, 2)
    assert outcome.attempts == 2
    assert seen == ["/api/import/status/imp-1"] * 3


def test_stops_when_failed_with_message():
    client, _ = _scripted([_status("failed", errorMessage="No questions found in PDF")])

    outcome = _poller(client).run()

    assert outcome.state == "failed"
    assert outcome.error == "No questions found in PDF"
    assert outcome.attempts == 0


def test_stops_when_already_completed():
    client, _ = _scripted([_status("completed", questionsFound=3, lessonsFound=0)])

    outcome = _poller(client).run()

    assert outcome.state == "completed"
    assert outcome.questions_found == 3


def test_times_out_after_max_attempts():
    client, seen = _scripted([_status("processing", progress=50)])

    outcome = _poller(client).run()

    assert outcome.state == "timeout"
    assert outcome.error == "Import timed out"
    assert outcome.attempts == MAX_ATTEMPTS == 120
    assert len(seen) == 120


def test_aborts_after_three_consecutive_errors():
    client, seen = _scripted(
        [
            _status("processing"),
            httpx.Response(502),
            httpx.ConnectError("refused"),
            httpx.Response(200, text="<html>gateway</html>"),
        ]
    )

    poller = _poller(client)
    outcome = poller.run()

    assert outcome.state == "unreachable"
    assert outcome.error == "Failed to check status"
    assert outcome.attempts == 1
    assert poller.consecutive_errors == 3
    assert len(seen) == 4


def test_transient_errors_do_not_count_towards_timeout():
    client, _ = _scripted(
        [
            httpx.Response(503),
            httpx.Response(503),
            _status("processing"),
            httpx.Response(500),
            httpx.Response(500),
            _status("ready_for_review", questionsFound=1, lessonsFound=0),
        ]
    )

    outcome = _poller(client, max_attempts=2).run()

    assert outcome.state == "ready"
    assert outcome.attempts == 1


def test_fetch_status_raises_on_http_error():
    client, _ = _scripted([httpx.Response(404, json={"detail": "Import not found"})])

    with pytest.raises(StatusFetchError, match="HTTP 404"):
        _poller(client).fetch_status()


def test_status_callback_sees_every_successful_poll():
    client, _ = _scripted([_status("processing"), _status("ready_for_review", questionsFound=1)])
    seen: list[str] = []

    _poller(client, on_status=lambda status: seen.append(status.status)).run()

    assert seen == ["processing", "ready_for_review"]


def test_cancel_stops_waiting():
    client, _ = _scripted([_status("processing")])
    poller = ImportStatusPoller("imp-1", base_url="http://api.test", http_client=client, interval=30)

    timer = threading.Timer(0.05, poller.cancel)
    timer.start()
    try:
        outcome = poller.run()
    finally:
        timer.cancel()

    assert outcome.state == "cancelled"
    assert outcome.attempts == 1


def test_wait_for_import_helper():
    client, _ = _scripted([_status("ready_for_review", questionsFound=2, lessonsFound=1)])

    outcome = wait_for_import("imp-1", base_url="http://api.test", http_client=client, interval=0)

    assert outcome.state == "ready"
    assert outcome.lessons_found == 1
