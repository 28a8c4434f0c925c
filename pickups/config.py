"""Configuration management for the proposal exchange client."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .models import Credentials

_ENV_OVERRIDES = {
    "base_url": "PICKUPS_BASE_URL",
    "api_key": "PICKUPS_API_KEY",
    "bearer_token": "PICKUPS_BEARER_TOKEN",
    "timeout": "PICKUPS_TIMEOUT",
}


@dataclass(frozen=True)
class ExchangeConfig:
    """Connection settings for the remote proposal store."""

    base_url: str
    api_key: str
    bearer_token: str
    timeout: float = 10.0

    @property
    def credentials(self) -> Credentials:
        return Credentials(api_key=self.api_key, bearer_token=self.bearer_token)

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "ExchangeConfig":
        """Create an :class:`ExchangeConfig` from raw dictionary data."""
        required_fields = {"base_url", "api_key", "bearer_token"}
        missing = {field for field in required_fields if not data.get(field)}
        if missing:
            raise ValueError(f"Missing required exchange configuration fields: {', '.join(sorted(missing))}")

        try:
            timeout = float(data.get("timeout", 10.0))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid timeout value: {data.get('timeout')!r}") from exc
        if timeout <= 0:
            raise ValueError("Timeout must be a positive number of seconds")

        return ExchangeConfig(
            base_url=str(data["base_url"]).strip(),
            api_key=str(data["api_key"]).strip(),
            bearer_token=str(data["bearer_token"]).strip(),
            timeout=timeout,
        )


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "exchange.yaml").resolve(strict=False)
    return candidate


def load_config(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> ExchangeConfig:
    """Load exchange settings from YAML, letting environment variables override them.

    A missing file is not an error as long as the environment supplies every
    required value.
    """
    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("PICKUPS_CONFIG"))

    raw: Dict[str, object] = {}
    if path.is_file():
        with path.open("r", encoding="utf-8") as handle:
            try:
                loaded = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"Configuration file {path} is not valid YAML: {exc}") from exc
        section = loaded.get("exchange", loaded) if isinstance(loaded, dict) else None
        if not isinstance(section, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        raw.update(section)

    for key, variable in _ENV_OVERRIDES.items():
        value = env.get(variable)
        if value:
            raw[key] = value

    return ExchangeConfig.from_dict(raw)


__all__ = ["ExchangeConfig", "load_config", "resolve_config_path"]
