# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Provides an async JSON-RPC client for the Odoo ERP.

The client logs in to obtain a ``session_id`` cookie, attaches it to every
``call_kw`` request and recovers from transient failures: rate limiting,
timeouts, gateway errors and malformed bodies are retried with exponential
backoff, and an expired session is refreshed once per logical call.
"""

import asyncio
import logging
import random
import re
from typing import Any

import httpx

from . import __version__
from .config import Settings
from .exceptions import (
    AuthenticationError,
    RateLimitedError,
    RemoteCallError,
    SessionExpiredError,
)
from .models import RemoteCallRequest

logger = logging.getLogger(__name__)

USER_AGENT = f"py-odoo-shipments/{__version__}"

_SESSION_COOKIE_RE = re.compile(r"session_id=([^;]+)")
_RETRYABLE_STATUSES = {502, 503, 504}


async def _backoff(delay: float) -> None:
    await asyncio.sleep(delay)


class OdooClient:
    """Session-authenticated client for the ERP's JSON-RPC endpoints."""

    AUTHENTICATE_PATH = "/web/session/authenticate"
    CALL_KW_PATH = "/web/dataset/call_kw"

    def __init__(
        self, settings: Settings, client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client with settings and an optional HTTP client."""
        self.settings = settings
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )
        self.session: str | None = None

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "OdooClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def authenticate(self) -> str:
        """Log in and return a fresh session token.

        Raises:
            AuthenticationError: If the ERP is unreachable, answers with a
                non-successful status or an error body, or sets no
                ``session_id`` cookie.
        """
        url = self.settings.url + self.AUTHENTICATE_PATH
        payload = _rpc_envelope(
            {
                "db": self.settings.db,
                "login": self.settings.username,
                "password": self.settings.password,
            }
        )
        try:
            response = await self.client.post(
                url, json=payload, timeout=self.settings.login_timeout,
            )
        except httpx.TimeoutException as e:
            raise AuthenticationError(f"Authentication timed out: {e}") from e
        except httpx.RequestError as e:
            raise AuthenticationError(f"Authentication request failed: {e}") from e

        if not response.is_success:
            raise AuthenticationError(
                f"Authentication failed: HTTP {response.status_code} {response.reason_phrase}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise AuthenticationError("Authentication failed: response is not JSON") from e
        if isinstance(body, dict) and body.get("error"):
            raise AuthenticationError(
                f"Authentication failed: {_error_message(body['error'])}"
            )

        session = _extract_session(response)
        if not session:
            raise AuthenticationError("Unable to retrieve session_id from response.")

        logger.info("Authenticated against %s as %s.", self.settings.url, self.settings.username)
        self.session = session
        return session

    async def call(
        self, session: str, request: RemoteCallRequest, attempt: int = 0,
    ) -> list[dict[str, Any]]:
        """Execute ``request`` under ``session`` and return the records.

        Retryable failures wait ``2**attempt`` seconds and try again until
        ``attempt`` reaches ``max_retries``; the last error is then raised.
        An expired session triggers one re-authentication; a second expiry
        within the same call is terminal.

        Raises:
            RateLimitedError: Still rate limited once retries are exhausted.
            RemoteCallError: Any other failure after retries, or a terminal
                application error.
            AuthenticationError: If the session refresh fails.
        """
        refreshed = False
        while True:
            try:
                return await self._post_call_kw(session, request)
            except SessionExpiredError as e:
                if refreshed:
                    logger.error(
                        "Session for %s.%s rejected again after re-authentication.",
                        request.model,
                        request.method,
                    )
                    raise RemoteCallError(
                        f"Session expired again after re-authentication: {e.message}",
                        status_code=e.status_code,
                    ) from e
                logger.info("Session expired; re-authenticating once.")
                session = await self.authenticate()
                refreshed = True
            except RemoteCallError as e:
                if not e.retryable:
                    raise
                if attempt >= self.settings.max_retries:
                    logger.error(
                        "All %d retries for %s.%s failed: %s",
                        self.settings.max_retries,
                        request.model,
                        request.method,
                        e.message,
                    )
                    raise
                delay = 2**attempt
                logger.warning(
                    "Call %s.%s failed on attempt %d/%d (%s). Retrying in %d seconds...",
                    request.model,
                    request.method,
                    attempt + 1,
                    self.settings.max_retries + 1,
                    e.message,
                    delay,
                )
                await _backoff(delay)
                attempt += 1

    async def search_read(
        self,
        model: str,
        domain: list[Any] | None = None,
        fields: list[str] | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> list[dict[str, Any]]:
        """Run ``search_read`` under the current session, logging in first if needed."""
        if self.session is None:
            await self.authenticate()
        request = RemoteCallRequest(
            model=model,
            method="search_read",
            domain=domain or [],
            fields=fields or [],
            kwargs=kwargs,
            timeout=timeout,
        )
        return await self.call(self.session, request)

    async def _post_call_kw(
        self, session: str, request: RemoteCallRequest,
    ) -> list[dict[str, Any]]:
        """Send one ``call_kw`` request and classify the outcome."""
        url = self.settings.url + self.CALL_KW_PATH
        timeout = request.timeout or self.settings.call_timeout
        logger.debug("Calling %s.%s with domain %s", request.model, request.method, request.domain)
        try:
            response = await self.client.post(
                url,
                json=_rpc_envelope(request.to_params()),
                headers={"Cookie": f"session_id={session}"},
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise RemoteCallError(
                f"Call {request.model}.{request.method} timed out after {timeout}s",
                retryable=True,
            ) from e
        except httpx.RequestError as e:
            raise RemoteCallError(
                f"Call {request.model}.{request.method} failed: {e}", retryable=True,
            ) from e

        if response.status_code == 429:
            raise RateLimitedError()
        if not response.is_success:
            raise RemoteCallError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
                retryable=response.status_code in _RETRYABLE_STATUSES,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteCallError(
                "Malformed response: body is not JSON",
                status_code=response.status_code,
                retryable=True,
            ) from e

        if not isinstance(body, dict):
            raise RemoteCallError(
                "Malformed response: unexpected body", retryable=True,
            )
        if body.get("error"):
            error = body["error"]
            message = _error_message(error)
            if _is_session_expired(error):
                raise SessionExpiredError(message, status_code=response.status_code)
            raise RemoteCallError(message, status_code=response.status_code)
        if "result" not in body:
            raise RemoteCallError(
                "Malformed response: no result", retryable=True,
            )
        return body["result"]


def _rpc_envelope(params: dict[str, Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "method": "call",
        "params": params,
        "id": random.randint(0, 999),
    }


def _extract_session(response: httpx.Response) -> str | None:
    for header in response.headers.get_list("set-cookie"):
        match = _SESSION_COOKIE_RE.search(header)
        if match:
            return match.group(1)
    return None


def _error_message(error: Any) -> str:
    """Pull the most specific message out of a JSON-RPC error object."""
    if isinstance(error, dict):
        data = error.get("data")
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        if error.get("message"):
            return str(error["message"])
    return str(error)


def _is_session_expired(error: Any) -> bool:
    if not isinstance(error, dict):
        return "session expired" in str(error).lower()
    data = error.get("data") if isinstance(error.get("data"), dict) else {}
    if "SessionExpired" in str(data.get("name", "")):
        return True
    text = f"{error.get('message', '')} {data.get('message', '')}".lower()
    return "session" in text and "expired" in text
