import os
from pathlib import Path

import pytest

from browser_toolkit.config import ConfigError, load_config
from browser_toolkit.models import ExtractionRequest


def test_load_config_reads_env_file(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "BROWSER_TOOLKIT_API_KEY=from-env",
                "BROWSER_TOOLKIT_BROWSER__ENDPOINT=http://chrome:4444",
                "BROWSER_TOOLKIT_SESSION__REPORT_CLEANUP_FAILURE=false",
                "BROWSER_TOOLKIT_SERVER__PORT=8080",
            ]
        )
    )

    config = load_config(env_file=env_path)

    assert config.api_key == "from-env"
    assert config.browser.endpoint == "http://chrome:4444"
    assert config.session.report_cleanup_failure is False
    assert config.server.port == 8080
    assert config.session.health_check_url == "https://example.com"


def test_load_config_prioritises_overrides(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "BROWSER_TOOLKIT_API_KEY=env-key",
                "BROWSER_TOOLKIT_BROWSER__ENDPOINT=http://env:4444",
                "BROWSER_TOOLKIT_SERVER__HOST=10.0.0.1",
            ]
        )
    )

    config_path = tmp_path / "toolkit.yaml"
    config_path.write_text(
        "\n".join(
            [
                "api_key: file-key",
                "session:",
                "  paywall_proxy_prefix: https://proxy.example/",
            ]
        )
    )

    config = load_config(config_path, env_file=env_path, server={"port": 9000})

    assert config.api_key == "file-key"
    assert config.session.paywall_proxy_prefix == "https://proxy.example/"
    assert config.server.port == 9000
    assert config.server.host == "10.0.0.1"
    assert config.browser.endpoint == "http://env:4444"


def test_extraction_request_target_url() -> None:
    plain = ExtractionRequest(url="https://a.example/x")
    proxied = ExtractionRequest(url="https://a.example/x", bypass_paywall=True)

    assert plain.target_url("https://proxy/?q=") == "https://a.example/x"
    assert proxied.target_url("https://proxy/?q=") == "https://proxy/?q=https://a.example/x"


def _clear_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("BROWSER_TOOLKIT_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def test_load_config_requires_api_key(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _clear_env(monkeypatch, tmp_path)

    with pytest.raises(ConfigError, match="No API key configured"):
        load_config()
    with pytest.raises(ConfigError, match="No API key configured"):
        load_config(api_key="")


def test_load_config_merges_sections_key_by_key(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.setenv("BROWSER_TOOLKIT_API_KEY", "env-key")
    monkeypatch.setenv("BROWSER_TOOLKIT_BROWSER__HEADLESS", "false")
    config_path = tmp_path / "toolkit.yaml"
    config_path.write_text("browser:\n  endpoint: http://file:4444\n")
    overrides = {"browser": {"page_load_timeout": 15}}

    config = load_config(config_path, **overrides)

    assert config.api_key == "env-key"
    assert config.browser.headless is False
    assert config.browser.endpoint == "http://file:4444"
    assert config.browser.page_load_timeout == 15
    assert overrides == {"browser": {"page_load_timeout": 15}}


def test_load_config_rejects_bad_files(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _clear_env(monkeypatch, tmp_path)
    listing = tmp_path / "list.yaml"
    listing.write_text("- api_key\n")
    bad_port = tmp_path / "port.yaml"
    bad_port.write_text("api_key: k\nserver:\n  port: not-a-port\n")

    with pytest.raises(ConfigError, match="must contain a mapping"):
        load_config(listing)
    with pytest.raises(ConfigError, match="server.port"):
        load_config(bad_port)
