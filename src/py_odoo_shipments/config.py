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
"""Manages the application's configuration using Pydantic."""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_WEBSITES = ["Pure Form", "Limit-X Nutrition", "APX Energy"]
DEFAULT_ORDER_LINK = "{base_url}/web#id={id}&model=sale.order&view_type=form"

REQUIRED_FIELDS = ("url", "db", "username", "password")


class Settings(BaseSettings):
    """Manages configuration for the application.

    Reads settings from environment variables with the prefix 'ODOO_'
    (e.g. ``ODOO_URL``), optionally from a local ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ODOO_", env_file=".env", extra="ignore",
    )

    # ERP connection; all four are required.
    url: str
    db: str
    username: str
    password: str

    # Timeouts in seconds, per call class.
    login_timeout: float = 5.0
    lookup_timeout: float = 10.0
    call_timeout: float = 15.0

    max_retries: int = Field(default=3, ge=0)

    website_names: list[str] = DEFAULT_WEBSITES
    local_city: str = "Tijuana"
    records_per_page: int = Field(default=4, ge=1)
    order_link_template: str = DEFAULT_ORDER_LINK

    @field_validator(*REQUIRED_FIELDS)
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")


def load_settings(**overrides) -> Settings:
    """Build the settings, failing fast with a ConfigurationError.

    Keyword arguments take precedence over environment variables.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            name = ".".join(str(part) for part in error["loc"])
            if name in REQUIRED_FIELDS:
                name = f"ODOO_{name.upper()}"
            problems.append(f"{name}: {error['msg']}")
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(problems)
        ) from e
