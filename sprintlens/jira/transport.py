"""
HTTP transport for the Jira REST APIs.

Every request carries basic auth and ``Accept: application/json``. Responses
with status 429 or 5xx are retried with a ``Retry-After`` aware exponential
backoff; when the retries run out the last response is handed back so the
caller decides how to classify the failure.
"""

import json
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import requests
from requests.auth import HTTPBasicAuth

from .config import HttpSettings, JiraCredentials
from .errors import (
    JiraAuthError,
    JiraDataError,
    JiraNotFoundError,
    JiraRequestError,
    RetrievalCancelled,
)

logger = logging.getLogger(__name__)

BASE_DELAY_SECONDS = 0.2
MAX_BACKOFF_EXPONENT = 4
MAX_JITTER_SECONDS = 0.25

RETRYABLE_NETWORK_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


class CancellationToken:
    """
    Cooperative cancellation shared by every request and backoff wait of a
    retrieval call.

    A token is cancelled explicitly with ``cancel()`` or implicitly once its
    optional deadline (``timeout`` seconds from creation) has passed.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._expires_at = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def check(self) -> None:
        if self._event.is_set():
            raise RetrievalCancelled("Retrieval cancelled by caller")
        if self.expired:
            raise RetrievalCancelled("Retrieval deadline exceeded")

    def wait(self, seconds: float) -> None:
        """Block for ``seconds`` unless cancelled first."""
        self.check()
        remaining = self.remaining()
        timeout = seconds if remaining is None else min(seconds, remaining)
        if self._event.wait(timeout):
            raise RetrievalCancelled("Retrieval cancelled by caller")
        if remaining is not None and remaining <= seconds:
            raise RetrievalCancelled("Retrieval deadline exceeded")


@dataclass
class HttpResult:
    status_code: int
    body: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code <= 299

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except ValueError as e:
            raise JiraDataError(f"Response body is not valid JSON (HTTP {self.status_code}): {e}")


def is_retryable(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code <= 599


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Retry-After in seconds; HTTP-date values are ignored."""
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def backoff_delay(attempt: int, retry_after: Optional[float] = None) -> float:
    """Seconds to wait after the ``attempt``-th failed attempt."""
    if retry_after is not None:
        return retry_after
    base = BASE_DELAY_SECONDS * (2 ** min(attempt, MAX_BACKOFF_EXPONENT))
    return base + random.random() * MAX_JITTER_SECONDS


def raise_for_jira_status(result: HttpResult, action: str, key: Optional[str] = None) -> None:
    """Turn a non-2xx result into the matching JiraError."""
    if result.ok:
        return
    status = result.status_code
    if status in (401, 403):
        raise JiraAuthError(
            f"Jira {action} failed: Authentication failed (HTTP {status}). "
            "Check the configured email/api token and the account's permissions for the base URL.",
            status_code=status,
            body=result.body,
        )
    if status == 404:
        target = f" for key '{key}'" if key else ""
        raise JiraNotFoundError(
            f"Jira {action} failed: resource not found{target}.",
            key=key,
            body=result.body,
        )
    raise JiraRequestError(
        f"Jira {action} failed: HTTP {status} - {result.body}",
        status_code=status,
        body=result.body,
    )


class JiraTransport:
    """
    Issues single Jira requests with timeouts and retry/backoff.

    ``requests.Session`` is not documented as thread-safe, so each thread
    gets its own session. A session passed in explicitly is used as is by
    every thread.
    """

    def __init__(
        self,
        credentials: JiraCredentials,
        settings: Optional[HttpSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.credentials = credentials
        self.settings = settings or HttpSettings()
        self._shared_session = self._configure(session) if session is not None else None
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def _configure(self, session: requests.Session) -> requests.Session:
        session.auth = HTTPBasicAuth(self.credentials.email, self.credentials.api_token)
        session.headers.update({"Accept": "application/json"})
        return session

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._configure(requests.Session())
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.credentials.base_url}/{path.lstrip('/')}"

    def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResult:
        return self.request("GET", path, params=params, cancel_token=cancel_token)

    def post_json(
        self,
        path: str,
        body: Dict[str, Any],
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResult:
        return self.request("POST", path, body=body, cancel_token=cancel_token)

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HttpResult:
        """
        Send one request, retrying 429/5xx responses and network failures.

        Returns:
            The first non-retryable response, or the last response once
            ``max_retries`` attempts have been used.

        Raises:
            JiraRequestError: if no response was ever received
            RetrievalCancelled: if the cancellation token fires
        """
        url = self.url_for(path)
        last_result: Optional[HttpResult] = None
        last_error: Optional[requests.RequestException] = None

        for attempt in range(1, self.settings.max_retries + 1):
            if cancel_token is not None:
                cancel_token.check()

            retry_after = None
            try:
                result = self._send(method, url, params, body, cancel_token)
            except RETRYABLE_NETWORK_ERRORS as e:
                last_error = e
                logger.warning(f"{method} {url} failed on attempt {attempt}/{self.settings.max_retries}: {e}")
            except requests.RequestException as e:
                raise JiraRequestError(f"Jira request {method} {url} failed: {e}") from e
            else:
                if not is_retryable(result.status_code):
                    return result
                last_result = result
                retry_after = parse_retry_after(result.header("Retry-After"))
                logger.warning(
                    f"{method} {url} returned HTTP {result.status_code} "
                    f"(attempt {attempt}/{self.settings.max_retries})"
                )

            if attempt < self.settings.max_retries:
                delay = backoff_delay(attempt, retry_after)
                logger.debug(f"Retrying {method} {url} in {delay:.3f}s")
                self._wait(delay, cancel_token)

        if last_result is not None:
            logger.error(f"Giving up on {method} {url} after {self.settings.max_retries} attempts")
            return last_result
        raise JiraRequestError(f"Jira request {method} {url} failed: {last_error}")

    def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]],
        body: Optional[Dict[str, Any]],
        cancel_token: Optional[CancellationToken],
    ) -> HttpResult:
        timeout = self.settings.timeout
        if cancel_token is not None:
            remaining = cancel_token.remaining()
            if remaining is not None:
                timeout = max(0.001, min(timeout, remaining))

        headers = {"Content-Type": "application/json"} if body is not None else None
        response = self.session.request(
            method,
            url,
            params=params,
            data=json.dumps(body) if body is not None else None,
            headers=headers,
            timeout=timeout,
        )
        return HttpResult(
            status_code=response.status_code,
            body=response.text,
            headers=response.headers,
        )

    def _wait(self, seconds: float, cancel_token: Optional[CancellationToken]) -> None:
        if cancel_token is not None:
            cancel_token.wait(seconds)
        else:
            time.sleep(seconds)

    def close(self) -> None:
        if self._shared_session is not None:
            self._shared_session.close()
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
