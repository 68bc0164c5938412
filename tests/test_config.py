import json

import pytest

from tabwright.command.command_utils import load_browser_config
from tabwright.config import DEFAULT_CDP_PORT, DEFAULT_CONTROL_PORT, BrowserConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "ENABLED",
        "CONTROL_PORT",
        "CONTROL_URL",
        "CDP_PORT",
        "COLOR",
        "HEADLESS",
        "ATTACH_ONLY",
        "NO_SANDBOX",
        "EXECUTABLE_PATH",
        "USER_DATA_DIR",
    ):
        monkeypatch.delenv(f"TABWRIGHT_BROWSER_{name}", raising=False)


def test_defaults():
    config = BrowserConfig()

    assert config.control_port == DEFAULT_CONTROL_PORT
    assert config.cdp_port == DEFAULT_CDP_PORT
    assert config.control_url == f"http://127.0.0.1:{DEFAULT_CONTROL_PORT}"
    assert config.is_loopback_control()


def test_from_mapping_accepts_camel_case_and_coerces():
    config = BrowserConfig.from_mapping(
        {
            "controlPort": "19100",
            "attachOnly": "yes",
            "headless": 1,
            "color": "  #123456 ",
            "unknownKey": "ignored",
        }
    )

    assert config.control_port == 19100
    assert config.cdp_port == 19101
    assert config.attach_only is True
    assert config.headless is True
    assert config.color == "#123456"


def test_from_mapping_rejects_bad_ports():
    config = BrowserConfig.from_mapping({"cdp_port": 70000, "control_port": "abc"})

    assert config.cdp_port == DEFAULT_CDP_PORT
    assert config.control_port == DEFAULT_CONTROL_PORT


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("TABWRIGHT_BROWSER_CONTROL_PORT", "19200")
    monkeypatch.setenv("TABWRIGHT_BROWSER_HEADLESS", "true")
    monkeypatch.setenv("TABWRIGHT_BROWSER_ENABLED", "off")

    config = BrowserConfig.from_env()

    assert config.control_port == 19200
    assert config.control_url == "http://127.0.0.1:19200"
    assert config.headless is True
    assert config.enabled is False


def test_from_file_reads_yaml_browser_section(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("browser:\n  cdpPort: 19300\n  noSandbox: true\n", encoding="utf-8")

    config = BrowserConfig.from_file(path)

    assert config.cdp_port == 19300
    assert config.no_sandbox is True


def test_from_file_reads_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"color": "#ABCDEF"}), encoding="utf-8")

    assert BrowserConfig.from_file(path).color == "#ABCDEF"


def test_from_file_rejects_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        BrowserConfig.from_file(path)


def test_non_loopback_control_url():
    assert not BrowserConfig(control_url="http://192.168.1.20:18791").is_loopback_control()
    assert BrowserConfig(control_url="http://localhost:18791/").is_loopback_control()
    assert BrowserConfig(control_url="http://[::1]:18791").is_loopback_control()


def test_command_port_override():
    config = load_browser_config(port=19400)

    assert config.control_port == 19400
    assert config.control_url == "http://127.0.0.1:19400"
