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
"""Exception hierarchy shared by the client, the clock and the HTTP surface."""


class OdooDashboardError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(OdooDashboardError):
    """Required settings are missing or invalid. Fatal at startup."""


class AuthenticationError(OdooDashboardError):
    """Logging in to the ERP failed."""


class RemoteCallError(OdooDashboardError):
    """A JSON-RPC call failed.

    ``retryable`` marks transient failures (timeouts, malformed bodies,
    gateway errors, rate limiting) that the client may retry with backoff.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retryable = retryable


class SessionExpiredError(RemoteCallError):
    """The ERP rejected the session token as expired."""


class RateLimitedError(RemoteCallError):
    """The ERP answered HTTP 429."""

    def __init__(self, message: str = "Too many requests", *, status_code: int | None = 429):
        super().__init__(message, status_code=status_code, retryable=True)


class InvalidTimestampError(OdooDashboardError, ValueError):
    """A timestamp could not be decomposed into a valid local date and time."""


class NoWebsitesFoundError(OdooDashboardError):
    """None of the configured websites exist on the ERP."""
