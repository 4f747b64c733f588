"""Runtime settings for the review client.

Settings resolve in three layers: explicit overrides (CLI options), then
``STAGING_REVIEW_*`` environment variables, then defaults. The CLI loads a
local ``.env`` via ``python-dotenv`` before calling :func:`load_settings`, so
values placed there behave like regular environment variables.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

# The staging server listens on 8472 unless told otherwise.
DEFAULT_BASE_URL = "http://127.0.0.1:8472/api"
DEFAULT_ACCOUNT_PREFIX = "Expenses:"

# Setting name -> environment variable
ENV_VARS: dict[str, str] = {
    "base_url": "STAGING_REVIEW_URL",
    "request_timeout": "STAGING_REVIEW_TIMEOUT",
    "reconnect_delay": "STAGING_REVIEW_RECONNECT_DELAY",
    "blur_close_delay": "STAGING_REVIEW_BLUR_DELAY",
    "default_account": "STAGING_REVIEW_DEFAULT_ACCOUNT",
}


class ReviewSettings(BaseModel):
    """Validated client settings.

    ``blur_close_delay`` is how long an open suggestion list survives after
    the account field loses focus, so a pointer click on a candidate can
    still land.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 10.0
    reconnect_delay: float = 3.0
    blur_close_delay: float = 0.2
    default_account: str = DEFAULT_ACCOUNT_PREFIX

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("request_timeout", "reconnect_delay", "blur_close_delay")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    def endpoint(self, path: str) -> str:
        """Join ``path`` onto the API base URL."""

        return f"{self.base_url}/{path.lstrip('/')}"


def _from_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, env in ENV_VARS.items():
        raw = os.getenv(env)
        if raw is None or not raw.strip():
            continue
        values[name] = raw.strip()
    return values


def load_settings(**overrides: Any) -> ReviewSettings:
    """Resolve settings from overrides, environment and defaults.

    ``None`` overrides are ignored so CLI options that were not passed fall
    through to the environment. Invalid values raise ``ValueError`` naming the
    offending setting and its environment variable.
    """

    values = _from_env()
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return ReviewSettings.model_validate(values)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            loc = str(err["loc"][0]) if err.get("loc") else "?"
            env = ENV_VARS.get(loc)
            where = f"{loc} ({env})" if env else loc
            problems.append(f"{where}: {err['msg']}")
        raise ValueError("Invalid settings: " + "; ".join(problems)) from e


__all__ = [
    "DEFAULT_ACCOUNT_PREFIX",
    "DEFAULT_BASE_URL",
    "ENV_VARS",
    "ReviewSettings",
    "load_settings",
]
