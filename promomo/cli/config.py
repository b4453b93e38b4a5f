"""
PromoMo CLI Configuration Module

Handles configuration priority:
  1. CLI flags (highest priority)
  2. Environment variables
  3. Default values (lowest priority)

Configuration sources:
  - API_BASE: PROMOMO_API_BASE or NEXT_PUBLIC_API_URL (env) → http://localhost:8000/api/v1 (default)
  - API_TOKEN: PROMOMO_API_TOKEN (env) → saved state token → none
  - TIMEOUT: PROMOMO_CLI_TIMEOUT (env) → 30 (default, seconds)
  - OUTPUT_FORMAT: PROMOMO_CLI_OUTPUT_FORMAT (env) → text (default, text|json)
  - RETRY_TIMES: PROMOMO_CLI_RETRY_TIMES (env) → 3 (default)
  - BUSINESS_ID / USER_ID: PROMOMO_BUSINESS_ID / PROMOMO_USER_ID (env) → none
"""

import os
from dataclasses import dataclass
from typing import Literal, Optional

DEFAULT_API_BASE = "http://localhost:8000/api/v1"


@dataclass
class CLIConfig:
    """CLI Configuration object."""

    api_base: str = DEFAULT_API_BASE
    api_token: Optional[str] = None
    timeout: int = 30  # seconds
    output_format: Literal["text", "json"] = "text"
    retry_times: int = 3
    business_id: Optional[str] = None
    user_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary (safe for display, no secrets)."""
        return {
            "api_base": self.api_base,
            "api_token": "***" if self.api_token else None,
            "timeout": self.timeout,
            "output_format": self.output_format,
            "retry_times": self.retry_times,
            "business_id": self.business_id,
            "user_id": self.user_id,
        }


def get_api_base_from_env() -> str:
    """
    Get API base URL from environment variables.

    Priority:
      1. PROMOMO_API_BASE
      2. NEXT_PUBLIC_API_URL
      3. Default: http://localhost:8000/api/v1
    """
    api_base = os.getenv("PROMOMO_API_BASE")
    if api_base:
        return api_base

    api_base = os.getenv("NEXT_PUBLIC_API_URL")
    if api_base:
        return api_base

    return DEFAULT_API_BASE


def _int_from_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        if value:
            return int(value)
    except (ValueError, TypeError):
        pass

    return default


def get_timeout_from_env() -> int:
    """
    Source: PROMOMO_CLI_TIMEOUT (seconds)
    Default: 30
    """
    return _int_from_env("PROMOMO_CLI_TIMEOUT", 30)


def get_retry_times_from_env() -> int:
    """
    Source: PROMOMO_CLI_RETRY_TIMES
    Default: 3
    """
    return _int_from_env("PROMOMO_CLI_RETRY_TIMES", 3)


def get_output_format_from_env() -> Literal["text", "json"]:
    output_format = os.getenv("PROMOMO_CLI_OUTPUT_FORMAT", "text").lower()
    if output_format in ("text", "json"):
        return output_format  # type: ignore
    return "text"


def get_config(
    api_base: Optional[str] = None,
    api_token: Optional[str] = None,
    timeout: Optional[int] = None,
    output_format: Optional[Literal["text", "json"]] = None,
    retry_times: Optional[int] = None,
    saved_token: Optional[str] = None,
) -> CLIConfig:
    """
    Build CLI configuration with priority: CLI flag > env > default.

    Args:
        api_base: CLI flag override for API base URL
        api_token: CLI flag override for the bearer token
        timeout: CLI flag override for timeout (seconds)
        output_format: CLI flag override for output format (text|json)
        retry_times: CLI flag override for retry times
        saved_token: token persisted in the CLI state file, used last

    Returns:
        CLIConfig object with resolved values
    """
    return CLIConfig(
        api_base=api_base or get_api_base_from_env(),
        api_token=api_token or os.getenv("PROMOMO_API_TOKEN") or saved_token,
        timeout=timeout or get_timeout_from_env(),
        output_format=output_format or get_output_format_from_env(),
        retry_times=retry_times or get_retry_times_from_env(),
        business_id=os.getenv("PROMOMO_BUSINESS_ID") or None,
        user_id=os.getenv("PROMOMO_USER_ID") or None,
    )
