from __future__ import annotations

import logging
import os

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_RESPONSE_TIMEOUT = 30.0
DEFAULT_ROLE_WAITER_DELAY = 1
DEFAULT_ROLE_WAITER_MAX_ATTEMPTS = 40


def _env_number(name: str, default: float, cast: type) -> float:
    if name not in os.environ or os.environ[name].strip() == "":
        return default

    try:
        return cast(os.environ[name])
    except ValueError as e:
        msg = f"{name} environment variable must be a number, got {os.environ[name]!r}"
        raise RuntimeError(msg) from e


class Settings:
    """Process configuration, read from the environment on every access.

    The Lambda runtime sets the AWS_* variables; the IRSA_* variables are set
    on the function by the declaring program (or by hand in tests).
    """

    @property
    def default_response_url(self) -> str | None:
        """Callback URL used when a lifecycle event carries no ResponseURL."""
        return os.environ.get("IRSA_DEFAULT_RESPONSE_URL") or None

    @property
    def log_level(self) -> int:
        name = os.environ.get("IRSA_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            msg = f"IRSA_LOG_LEVEL environment variable is not a log level: {name!r}"
            raise RuntimeError(msg)

        return level

    @property
    def response_timeout(self) -> float:
        return _env_number("IRSA_RESPONSE_TIMEOUT", DEFAULT_RESPONSE_TIMEOUT, float)

    @property
    def role_waiter_delay(self) -> int:
        return int(_env_number("IRSA_ROLE_WAITER_DELAY", DEFAULT_ROLE_WAITER_DELAY, int))

    @property
    def role_waiter_max_attempts(self) -> int:
        return int(_env_number("IRSA_ROLE_WAITER_MAX_ATTEMPTS", DEFAULT_ROLE_WAITER_MAX_ATTEMPTS, int))

    @property
    def region(self) -> str | None:
        return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or None

    @property
    def profile(self) -> str | None:
        return os.environ.get("AWS_PROFILE") or None
