"""
Tests for the retrying network client and timeout policy.
"""

import threading

import pytest
import requests


def make_request():
    from voxrefine.network import HttpRequest
    return HttpRequest(method="POST", url="https://api.example.com/v1/audio", json={"a": 1})


class TestRetry:
    """Tests for NetworkClient.execute retry behavior."""

    def test_success_first_attempt(self, client, session, http_response):
        """A 200 on the first attempt returns immediately."""
        session.request.return_value = http_response(200, content=b"ok")

        response = client.execute(make_request(), timeout=10, label="Test")

        assert response.content == b"ok"
        assert response.status == 200
        assert response.ok
        assert session.request.call_count == 1
        assert client.delays == []

    def test_retries_transport_errors_with_backoff(self, client, session, http_response):
        """Two transport failures then success waits 1s then 2s."""
        session.request.side_effect = [
            requests.ConnectionError("connection refused"),
            requests.Timeout("read timed out"),
            http_response(200, content=b"done"),
        ]

        response = client.execute(make_request(), timeout=10, label="Test")

        assert response.content == b"done"
        assert session.request.call_count == 3
        assert client.delays == [1.0, 2.0]

    def test_terminal_error_single_attempt(self, client, session):
        """Errors that are not transport failures abort after one attempt."""
        from voxrefine.errors import NetworkError

        session.request.side_effect = requests.exceptions.InvalidURL("bad url")

        with pytest.raises(NetworkError) as exc_info:
            client.execute(make_request(), timeout=10, label="Test")

        assert session.request.call_count == 1
        assert client.delays == []
        assert exc_info.value.detail == "Network request failed after 1 attempts: bad url"

    def test_ssl_error_is_terminal(self, client, session):
        """Certificate problems won't fix themselves on retry."""
        from voxrefine.errors import NetworkError

        session.request.side_effect = requests.exceptions.SSLError("certificate verify failed")

        with pytest.raises(NetworkError):
            client.execute(make_request(), timeout=10, label="Test")

        assert session.request.call_count == 1

    def test_exhaustion_reports_attempts(self, client, session):
        """Three transport failures give one NetworkError naming the last cause."""
        from voxrefine.errors import NetworkError

        session.request.side_effect = [
            requests.ConnectionError("first"),
            requests.ConnectionError("second"),
            requests.ConnectionError("third"),
        ]

        with pytest.raises(NetworkError) as exc_info:
            client.execute(make_request(), timeout=10, label="Test")

        assert session.request.call_count == 3
        assert client.delays == [1.0, 2.0]
        assert "after 3 attempts" in exc_info.value.message
        assert "third" in exc_info.value.message

    def test_http_error_status_not_retried(self, client, session, http_response):
        """A 500 response is returned to the caller, not retried."""
        session.request.return_value = http_response(500, content=b"internal")

        response = client.execute(make_request(), timeout=10, label="Test")

        assert response.status == 500
        assert not response.ok
        assert response.text() == "internal"
        assert session.request.call_count == 1

    def test_non_requests_exception_is_terminal(self, client, session):
        """Failures outside requests are wrapped once and never retried."""
        from voxrefine.errors import NetworkError

        session.request.side_effect = KeyError("boom")

        with pytest.raises(NetworkError) as exc_info:
            client.execute(make_request(), timeout=10, label="Test")

        assert exc_info.value.detail == "Network request failed after 1 attempts: 'boom'"
        assert isinstance(exc_info.value.__cause__, KeyError)
        assert session.request.call_count == 1
        assert client.delays == []

    def test_request_forwarded_to_session(self, client, session, http_response):
        """Method, url, body and timeout reach requests unchanged."""
        session.request.return_value = http_response(200)

        client.execute(make_request(), timeout=42.0, label="Test")

        args, kwargs = session.request.call_args
        assert args == ("POST", "https://api.example.com/v1/audio")
        assert kwargs["json"] == {"a": 1}
        assert kwargs["timeout"] == 42.0


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancelled_before_first_attempt(self, client, session):
        from voxrefine.errors import Cancelled

        cancel = threading.Event()
        cancel.set()

        with pytest.raises(Cancelled):
            client.execute(make_request(), timeout=10, label="Test", cancel=cancel)

        session.request.assert_not_called()

    def test_cancel_during_retry_delay(self, client, session):
        """A cancel set while waiting ends the call without another attempt."""
        from voxrefine.errors import Cancelled

        cancel = threading.Event()

        def fail_and_cancel(*args, **kwargs):
            cancel.set()
            raise requests.ConnectionError("refused")

        session.request.side_effect = fail_and_cancel

        with pytest.raises(Cancelled):
            client.execute(make_request(), timeout=10, label="Test", cancel=cancel)

        assert session.request.call_count == 1


class TestTimeouts:
    """Tests for the size-proportional STT timeout."""

    def test_small_upload(self):
        from voxrefine.network import stt_timeout
        assert stt_timeout(0) == 30
        assert stt_timeout(1000) == 45

    def test_scales_per_megabyte(self):
        from voxrefine.network import MEGABYTE, stt_timeout
        assert stt_timeout(MEGABYTE) == 45
        assert stt_timeout(MEGABYTE + 1) == 60
        assert stt_timeout(3 * MEGABYTE) == 75

    def test_capped(self):
        from voxrefine.network import MEGABYTE, stt_timeout
        assert stt_timeout(50 * MEGABYTE) == 120


class TestMetrics:
    """Attempts are reported to the metrics writer when one is attached."""

    def test_attempts_logged(self, session, http_response):
        from unittest.mock import Mock
        from voxrefine.network import NetworkClient

        metrics = Mock()
        session.request.side_effect = [requests.Timeout("slow"), http_response(200)]
        client = NetworkClient(session=session, sleep=lambda s: None, metrics=metrics)

        client.execute(make_request(), timeout=10, label="Test")

        events = [c.args[0] for c in metrics.log.call_args_list]
        outcomes = [c.kwargs["outcome"] for c in metrics.log.call_args_list]
        assert events == ["network_attempt", "network_attempt"]
        assert outcomes == ["retryable_error", "http_200"]
