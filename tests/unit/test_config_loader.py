"""Unit tests for configuration loading."""

import pytest

from teleterm.config import ClientConfig, default_config_path, load_client_config
from teleterm.errors import ConfigError


def test_missing_file_yields_defaults(tmp_path):
    config = load_client_config(tmp_path / "missing.yml")

    assert config.host_url == "ws://localhost:8129"
    assert config.terminal_type == "bash"
    assert config.settle_delay_s == 0.1
    assert [card.name for card in config.terminals] == ["Terminal 1", "Terminal 2", "Terminal 3"]


def test_env_vars_are_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("TT_HOST", "ws://build-box:9000")
    path = tmp_path / "teleterm.yml"
    path.write_text(
        "host_url: ${TT_HOST}\n"
        "working_dir: /srv/${TT_UNSET_VAR}\n"
        "terminals:\n"
        "  - name: Build\n"
        "    color: '#f0f'\n",
        encoding="utf-8",
    )

    config = load_client_config(path)

    assert config.host_url == "ws://build-box:9000"
    assert config.working_dir == "/srv/${TT_UNSET_VAR}"
    assert config.terminals[0].name == "Build"


def test_invalid_values_raise_config_error(tmp_path):
    path = tmp_path / "teleterm.yml"
    path.write_text("host_url: http://not-a-websocket\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_client_config(path)


def test_invalid_color_raises_config_error(tmp_path):
    path = tmp_path / "teleterm.yml"
    path.write_text("terminals:\n  - name: A\n    color: green\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_client_config(path)


def test_unknown_keys_are_warned(tmp_path, caplog):
    path = tmp_path / "teleterm.yml"
    path.write_text("host_url: ws://h:1\nshel: zsh\n", encoding="utf-8")

    with caplog.at_level("WARNING", logger="teleterm.config.loader"):
        config = load_client_config(path)

    assert config.host_url == "ws://h:1"
    assert "shel" in caplog.text


def test_unparseable_yaml_falls_back_to_defaults(tmp_path):
    path = tmp_path / "teleterm.yml"
    path.write_text("host_url: [unclosed\n", encoding="utf-8")

    assert load_client_config(path).host_url == "ws://localhost:8129"


@pytest.mark.parametrize(
    ("host_url", "http_url", "expected"),
    [
        ("ws://localhost:8129", None, "http://localhost:8129"),
        ("wss://host.example/", None, "https://host.example"),
        ("ws://localhost:8129", "http://logs:9000/", "http://logs:9000"),
    ],
)
def test_console_log_url(host_url, http_url, expected):
    config = ClientConfig(host_url=host_url, log_forwarding={"http_url": http_url})

    assert config.console_log_url() == expected


def test_config_path_can_come_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "custom.yml"
    path.write_text("terminal_type: zsh\n", encoding="utf-8")
    monkeypatch.setenv("TELETERM_CONFIG", str(path))

    assert default_config_path() == path
    assert load_client_config().terminal_type == "zsh"


def test_non_mapping_file_raises_config_error(tmp_path):
    path = tmp_path / "teleterm.yml"
    path.write_text("- ws://h:1\n- bash\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="must contain a mapping"):
        load_client_config(path)


def test_unknown_keys_inside_terminal_cards_are_warned(tmp_path, caplog):
    path = tmp_path / "teleterm.yml"
    path.write_text("terminals:\n  - name: A\n    colour: '#fff'\n", encoding="utf-8")

    with caplog.at_level("WARNING", logger="teleterm.config.loader"):
        load_client_config(path)

    assert "root.terminals[0]" in caplog.text
    assert "colour" in caplog.text
