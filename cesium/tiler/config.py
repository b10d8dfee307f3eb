"""Client configuration loaded from environment variables.

The configuration is read once at startup and passed explicitly to the
clients and the workflow. ``from_env()`` fails fast with
``ConfigurationError`` so a missing token is reported before any request
is made.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from cesium.tiler.exceptions import ConfigurationError

DEFAULT_API_URL = "https://api.cesium.com/v1"
DEFAULT_REGION = "us-east-1"
DEFAULT_POLL_INTERVAL = 5.0

TOKEN_ENV = "CESIUM_AUTH_TOKEN"


@dataclass(frozen=True)
class TilerConfig:
    """Immutable client configuration.

    Attributes:
        token: Cesium ion access token sent as a bearer token
        api_url: Base URL of the REST API
        region: AWS region of the upload bucket
        request_timeout: Per-request timeout in seconds (None for no timeout)
        poll_interval: Seconds between status polls
        poll_timeout: Maximum seconds to wait for a status (None for no limit)
    """

    token: str = field(repr=False)
    api_url: str = DEFAULT_API_URL
    region: str = DEFAULT_REGION
    request_timeout: Optional[float] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: Optional[float] = None

    def __post_init__(self):
        _validate(self)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TilerConfig":
        """Load and validate configuration from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigurationError: If the token is missing or a value is invalid
        """
        env = os.environ if environ is None else environ

        poll_interval = _optional_float(env, "CESIUM_POLL_INTERVAL")
        if poll_interval is None:
            poll_interval = DEFAULT_POLL_INTERVAL

        return cls(
            token=env.get(TOKEN_ENV, "").strip(),
            api_url=env.get("CESIUM_API_URL", DEFAULT_API_URL),
            region=env.get("CESIUM_UPLOAD_REGION", DEFAULT_REGION),
            request_timeout=_optional_float(env, "CESIUM_REQUEST_TIMEOUT"),
            poll_interval=poll_interval,
            poll_timeout=_optional_float(env, "CESIUM_POLL_TIMEOUT"),
        )


def _optional_float(env: Mapping[str, str], key: str) -> Optional[float]:
    raw = env.get(key, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}", key=key) from None


def _validate(config: TilerConfig) -> None:
    """Validate configuration values. Raises ``ConfigurationError``."""
    if not config.token:
        raise ConfigurationError(
            f"Missing Cesium ion access token. Set {TOKEN_ENV}.", key=TOKEN_ENV
        )

    if not config.api_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"CESIUM_API_URL must be an http(s) URL, got {config.api_url!r}",
            key="CESIUM_API_URL",
        )

    if not config.region:
        raise ConfigurationError("CESIUM_UPLOAD_REGION must not be empty", key="CESIUM_UPLOAD_REGION")

    if config.request_timeout is not None and config.request_timeout <= 0:
        raise ConfigurationError("CESIUM_REQUEST_TIMEOUT must be > 0", key="CESIUM_REQUEST_TIMEOUT")

    if config.poll_interval < 0:
        raise ConfigurationError("CESIUM_POLL_INTERVAL must be >= 0", key="CESIUM_POLL_INTERVAL")

    if config.poll_timeout is not None and config.poll_timeout <= 0:
        raise ConfigurationError("CESIUM_POLL_TIMEOUT must be > 0", key="CESIUM_POLL_TIMEOUT")
