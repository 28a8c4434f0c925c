from __future__ import annotations

from pathlib import Path

import pytest

from pickups.config import ExchangeConfig, load_config, resolve_config_path
from pickups.models import Credentials


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "exchange.yaml"
    path.write_text(
        "exchange:\n"
        "  base_url: https://store.example.com\n"
        "  api_key: file-key\n"
        "  bearer_token: file-token\n"
        "  timeout: 4.5\n",
        encoding="utf-8",
    )
    return path


def test_load_config_from_yaml(config_file: Path) -> None:
    config = load_config(config_file, environ={})

    assert config == ExchangeConfig(
        base_url="https://store.example.com",
        api_key="file-key",
        bearer_token="file-token",
        timeout=4.5,
    )
    assert config.credentials == Credentials(api_key="file-key", bearer_token="file-token")


def test_environment_overrides_file_values(config_file: Path) -> None:
    config = load_config(
        config_file,
        environ={"PICKUPS_BEARER_TOKEN": "env-token", "PICKUPS_TIMEOUT": "2"},
    )

    assert config.api_key == "file-key"
    assert config.bearer_token == "env-token"
    assert config.timeout == 2.0


def test_environment_alone_is_enough(tmp_path: Path) -> None:
    config = load_config(
        tmp_path / "missing.yaml",
        environ={
            "PICKUPS_BASE_URL": "http://127.0.0.1:54321",
            "PICKUPS_API_KEY": "env-key",
            "PICKUPS_BEARER_TOKEN": "env-token",
        },
    )

    assert config.base_url == "http://127.0.0.1:54321"
    assert config.timeout == 10.0


def test_flat_yaml_without_section(tmp_path: Path) -> None:
    path = tmp_path / "flat.yaml"
    path.write_text("base_url: https://a.example\napi_key: k\nbearer_token: t\n", encoding="utf-8")

    assert load_config(path, environ={}).base_url == "https://a.example"


def test_missing_fields_are_reported(tmp_path: Path) -> None:
    path = tmp_path / "partial.yaml"
    path.write_text("exchange:\n  base_url: https://store.example.com\n", encoding="utf-8")

    with pytest.raises(ValueError) as excinfo:
        load_config(path, environ={})

    assert "api_key" in str(excinfo.value)
    assert "bearer_token" in str(excinfo.value)


@pytest.mark.parametrize("timeout", ["soon", "0", "-3"])
def test_invalid_timeout_is_rejected(timeout: str) -> None:
    with pytest.raises(ValueError):
        ExchangeConfig.from_dict(
            {"base_url": "https://a.example", "api_key": "k", "bearer_token": "t", "timeout": timeout}
        )


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path, environ={})


def test_invalid_yaml_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("exchange: [unclosed\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path, environ={})


def test_resolve_config_path(tmp_path: Path) -> None:
    custom = tmp_path / "custom.yaml"
    assert resolve_config_path(str(custom)) == custom.resolve()
    assert resolve_config_path(None).parts[-2:] == ("config", "exchange.yaml")


def test_credentials_repr_hides_secrets() -> None:
    assert "file-token" not in repr(Credentials(api_key="file-key", bearer_token="file-token"))
