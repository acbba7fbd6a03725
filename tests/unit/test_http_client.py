"""
Unit tests for the HTTP adapter — CA service reachability.

Uses respx to mock httpx HTTP calls (never makes real HTTP requests).

  - Any HTTP answer (200, 503, 404, ...) → online
  - Connection refused / DNS failure / connect timeout → offline
  - Read, write or pool timeouts → retried, then online
  - Other failures on an accepted connection → online
"""

from __future__ import annotations

import httpx
import pytest
import respx

from crl_pruner.adapters.http_client import HttpServerStatusChecker

STATUS_URL = "https://ca.example.com:8140/status/v1/simple/ca"


@pytest.fixture()
def checker() -> HttpServerStatusChecker:
    return HttpServerStatusChecker(status_url=STATUS_URL, timeout=1)


@pytest.fixture()
def no_retry_wait(monkeypatch: pytest.MonkeyPatch) -> None:
    """Skip tenacity's back-off sleeps between attempts."""
    monkeypatch.setattr(
        HttpServerStatusChecker._do_status_request.retry,  # type: ignore[attr-defined]
        "sleep",
        lambda _seconds: None,
    )


class TestServerOnline:
    """
    GIVEN a status endpoint that answers
    WHEN is_server_online() is called
    THEN True is returned, whatever the status code.
    """

    @respx.mock
    def test_ok_response(self, checker: HttpServerStatusChecker) -> None:
        respx.get(STATUS_URL).mock(return_value=httpx.Response(200, text="running"))

        assert checker.is_server_online() is True

    @respx.mock
    @pytest.mark.parametrize("status_code", [404, 500, 503])
    def test_error_status_still_means_online(
        self, checker: HttpServerStatusChecker, status_code: int
    ) -> None:
        respx.get(STATUS_URL).mock(return_value=httpx.Response(status_code))

        assert checker.is_server_online() is True


class TestServerOffline:
    @respx.mock
    def test_connection_refused(self, checker: HttpServerStatusChecker) -> None:
        """
        GIVEN nothing listens on the status port
        WHEN is_server_online() is called
        THEN False is returned after a single attempt.
        """
        route = respx.get(STATUS_URL).mock(side_effect=httpx.ConnectError("refused"))

        assert checker.is_server_online() is False
        assert route.call_count == 1

    @respx.mock
    def test_connect_timeouts_are_retried_then_offline(
        self, checker: HttpServerStatusChecker, no_retry_wait: None
    ) -> None:
        route = respx.get(STATUS_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

        assert checker.is_server_online() is False
        assert route.call_count == 3

    @respx.mock
    def test_timeout_then_answer_is_online(
        self, checker: HttpServerStatusChecker, no_retry_wait: None
    ) -> None:
        route = respx.get(STATUS_URL).mock(
            side_effect=[httpx.ReadTimeout("slow"), httpx.Response(200)]
        )

        assert checker.is_server_online() is True
        assert route.call_count == 2


class TestSlowServerIsOnline:
    """
    GIVEN a CA that accepts the connection but does not answer in time
    WHEN is_server_online() is called
    THEN the service counts as running and pruning must not start.
    """

    @respx.mock
    def test_read_timeouts_on_every_attempt(
        self, checker: HttpServerStatusChecker, no_retry_wait: None
    ) -> None:
        route = respx.get(STATUS_URL).mock(side_effect=httpx.ReadTimeout("no answer"))

        assert checker.is_server_online() is True
        assert route.call_count == 3

    @respx.mock
    @pytest.mark.parametrize(
        "error",
        [httpx.WriteTimeout("stalled"), httpx.PoolTimeout("pool exhausted")],
        ids=["write_timeout", "pool_timeout"],
    )
    def test_other_timeouts_after_retries(
        self,
        checker: HttpServerStatusChecker,
        no_retry_wait: None,
        error: httpx.TimeoutException,
    ) -> None:
        route = respx.get(STATUS_URL).mock(side_effect=error)

        assert checker.is_server_online() is True
        assert route.call_count == 3

    @respx.mock
    def test_dropped_connection_is_not_retried(self, checker: HttpServerStatusChecker) -> None:
        route = respx.get(STATUS_URL).mock(
            side_effect=httpx.RemoteProtocolError("server disconnected")
        )

        assert checker.is_server_online() is True
        assert route.call_count == 1
