"""
HTTP transport for the SMS template API

Takes an assembled TemplateRequest, POSTs it with requests and hands back the
decoded JSON response. ``dispatch`` runs the call on a worker thread and
returns a Future so callers never block.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_MAX_WORKERS = 4


class TemplateAPIError(Exception):
    """Base exception for template API transport failures"""
    pass


class TemplateTransportError(TemplateAPIError):
    """The request never got a response (connection, TLS, timeout)"""
    pass


class TemplateHTTPError(TemplateAPIError):
    """The service answered with a non-2xx status"""

    def __init__(self, status_code: int, message: str, body: Optional[Any] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {message}")


class TemplateResponseError(TemplateAPIError):
    """The service answered with a body that is not JSON"""
    pass


@dataclass
class TemplateRequest:
    """A fully assembled, signed request"""
    scheme: str
    host: str
    path: str
    params: Dict[str, Any]
    body: Dict[str, Any]
    method: str = "POST"
    headers: Dict[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})

    @property
    def random(self):
        return self.params.get("random")

    @property
    def time(self):
        return self.body.get("time")

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}{self.path}?{urlencode(self.params)}"


class HttpTransport:
    """Sends TemplateRequests over HTTP"""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, max_workers: int = DEFAULT_MAX_WORKERS,
                 session: Optional[requests.Session] = None):
        self.timeout = timeout
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="sms-template")

    def send(self, request: TemplateRequest) -> Dict:
        """Perform the HTTP call and return the decoded response body"""
        logger.debug(f"{request.method} {request.scheme}://{request.host}{request.path} "
                     f"random={request.random}")
        try:
            response = self._session.request(
                request.method,
                request.url,
                json=request.body,
                headers=request.headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.debug(f"Request to {request.path} failed: {e}")
            raise TemplateTransportError(f"Failed to reach {request.host}: {e}") from e

        if not 200 <= response.status_code < 300:
            try:
                error_body = response.json()
            except ValueError:
                error_body = None
            raise TemplateHTTPError(response.status_code, response.reason or "request failed", error_body)

        try:
            return response.json()
        except ValueError as e:
            raise TemplateResponseError(f"Malformed response from {request.path}: {e}") from e

    def dispatch(self, request: TemplateRequest,
                 callback: Optional[Callable[[Future], Any]] = None) -> Future:
        """
        Send a request without blocking.

        Args:
            request: The assembled request
            callback: Attached to the returned future as a done-callback; it
                receives the completed future exactly once

        Returns:
            Future: Resolves to the decoded response or raises TemplateAPIError
        """
        future = self._executor.submit(self.send, request)
        if callback is not None:
            future.add_done_callback(callback)
        return future

    def close(self):
        self._executor.shutdown(wait=True)
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


_default_transport = None
_default_lock = threading.Lock()


def get_default_transport() -> HttpTransport:
    """Shared transport used when callers don't supply their own"""
    global _default_transport
    with _default_lock:
        if _default_transport is None:
            _default_transport = HttpTransport()
        return _default_transport
