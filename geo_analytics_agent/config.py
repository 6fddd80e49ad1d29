from __future__ import annotations

import os
from dataclasses import dataclass

from geo_analytics_agent.clients.rankscale_client import (
    DEFAULT_API_BASE,
    extract_brand_id_from_key,
)


def _env(name: str, default: str = "") -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default.strip()
    value = raw.strip()
    placeholder = f"{name}="
    unquoted = value.strip("'\"").strip()
    if unquoted.lower() == placeholder.lower():
        return default.strip()
    return value if value else default.strip()


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    return int(raw) if raw else default


@dataclass(frozen=True)
class AgentConfig:
    api_key: str
    brand_id: str
    brand_name: str
    api_base_url: str
    timeout_sec: float
    max_retries: int
    backoff_base_sec: float
    app_url: str
    output_dir: str

    @classmethod
    def from_env(cls) -> "AgentConfig":
        return cls(
            api_key=_env("RANKSCALE_API_KEY"),
            brand_id=_env("RANKSCALE_BRAND_ID"),
            brand_name=_env("RANKSCALE_BRAND_NAME"),
            api_base_url=_env("RANKSCALE_API_BASE", DEFAULT_API_BASE).rstrip("/"),
            timeout_sec=max(1.0, _env_float("RANKSCALE_TIMEOUT_SEC", 15.0)),
            max_retries=max(0, _env_int("RANKSCALE_MAX_RETRIES", 3)),
            backoff_base_sec=max(0.0, _env_float("RANKSCALE_BACKOFF_BASE_SEC", 1.0)),
            app_url=_env("RANKSCALE_APP_URL", "https://app.rankscale.ai").rstrip("/"),
            output_dir=_env("REPORT_OUTPUT_DIR", "GEO Reports"),
        )


@dataclass(frozen=True)
class Credentials:
    api_key: str
    brand_id: str


def resolve_credentials(
    config: AgentConfig,
    api_key: str | None = None,
    brand_id: str | None = None,
) -> Credentials:
    """Flag values win over the environment; a brand ID embedded in the key
    is used last. An empty ``brand_id`` means discovery is still needed."""
    key = (api_key or "").strip() or config.api_key
    resolved_brand = (brand_id or "").strip() or config.brand_id
    if not resolved_brand:
        resolved_brand = extract_brand_id_from_key(key) or ""
    return Credentials(api_key=key, brand_id=resolved_brand)
