"""
HTTP adapter — CA service reachability check via httpx.

Implements the ServerStatusChecker port. Pruning must not run while the CA
service is up: it could revoke a certificate between our read and our
write, and that revocation would be lost.

  - any HTTP response, whatever its status → online
  - connection refused, DNS failure, connect timeout → offline
  - any other transport failure (read/write/pool timeout, broken
    connection) → online, since something accepted or held the connection

Timeouts are retried via tenacity before a verdict is reached.
"""

from __future__ import annotations

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger()


class HttpServerStatusChecker:
    """
    Probe the CA status endpoint.

    Implements the ServerStatusChecker port.
    """

    def __init__(
        self,
        status_url: str,
        timeout: int = 5,
        verify_tls: bool = False,
    ) -> None:
        self._status_url = status_url
        self._timeout = timeout
        self._verify_tls = verify_tls

    def is_server_online(self) -> bool:
        """Return False only when nothing accepts a connection on the status URL."""
        try:
            status_code = self._do_status_request()
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            log.debug("status.unreachable", url=self._status_url, error=str(e))
            return False
        except httpx.TransportError as e:
            log.warning(
                "status.online",
                url=self._status_url,
                error=f"{type(e).__name__}: {e}",
            )
            return True

        log.warning("status.online", url=self._status_url, status_code=status_code)
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=0.1, max=5),
        retry=retry_if_exception_type(httpx.TimeoutException),
        reraise=True,
    )
    def _do_status_request(self) -> int:
        """HTTP GET with retry on timeouts — transport errors reach the caller."""
        with httpx.Client(timeout=self._timeout, verify=self._verify_tls) as client:
            response = client.get(self._status_url)
            return response.status_code
