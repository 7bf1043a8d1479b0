import logging

import pytest

from common.app_setup import MASK, print_and_log, print_error, reset_logging, setup_logging
from common.config import DEFAULT_API_URL, DEFAULT_PREVIEWS_URL, ClientOptions, load_options
from common.errors import AbstractSDKError, UpstreamError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ABSTRACT_TOKEN", "ABSTRACT_CLI_PATH", "ABSTRACT_CONFIG", "ABSTRACT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    options = load_options()
    assert options.api_url == DEFAULT_API_URL
    assert options.previews_url == DEFAULT_PREVIEWS_URL
    assert options.transport_mode == "auto"
    assert options.access_token is None


def test_environment(monkeypatch):
    monkeypatch.setenv("ABSTRACT_TOKEN", "env-token")
    monkeypatch.setenv("ABSTRACT_CLI_PATH", "/usr/local/bin/abstract-cli")
    options = load_options()
    assert options.access_token == "env-token"
    assert options.cli_path == "/usr/local/bin/abstract-cli"


def test_yaml_file_then_env_then_overrides(monkeypatch, tmp_path):
    config = tmp_path / "abstract.yaml"
    config.write_text("accessToken: file-token\napiUrl: http://localhost:9000\ntransportMode: api\n")
    monkeypatch.setenv("ABSTRACT_CONFIG", str(config))
    assert load_options().access_token == "file-token"
    monkeypatch.setenv("ABSTRACT_TOKEN", "env-token")
    options = load_options(transport_mode="cli", cli_path="/bin/true")
    assert options.access_token == "env-token"
    assert options.api_url == "http://localhost:9000"
    assert options.transport_mode == "cli"


def test_json_file(tmp_path):
    config = tmp_path / "abstract.json"
    config.write_text('{"previews_url": "http://previews.local", "timeout": 5}')
    options = load_options(config)
    assert options.previews_url == "http://previews.local"
    assert options.timeout == 5


def test_invalid_mode_is_rejected():
    with pytest.raises(ValueError):
        load_options(transport_mode="telepathy")


def test_non_mapping_file_is_rejected(tmp_path):
    config = tmp_path / "abstract.yaml"
    config.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_options(config)


def test_options_are_frozen_and_mergeable():
    options = ClientOptions(accessToken="a")
    merged = options.merge({"access_token": "b"})
    assert (options.access_token, merged.access_token) == ("a", "b")
    with pytest.raises(Exception):
        options.access_token = "c"


def test_errors_can_log(caplog):
    with caplog.at_level(logging.ERROR):
        error = UpstreamError("boom", status=502, body="bad gateway", log=True)
    assert isinstance(error, AbstractSDKError)
    assert error.status == 502
    assert "boom" in caplog.text


def test_setup_logging_to_file(tmp_path, capsys):
    logfile = tmp_path / "log.txt"
    setup_logging(app_name="abstract_test", logfile=str(logfile))
    try:
        print_and_log("hello from the test")
        logging.getLogger("orchestrator.resolver").info("resolved sha")
        logging.getLogger("unrelated.library").info("not ours")
    finally:
        reset_logging()
    assert "hello from the test" in capsys.readouterr().out
    text = logfile.read_text()
    assert "hello from the test" in text
    assert "orchestrator.resolver resolved sha" in text
    assert "not ours" not in text


def test_setup_logging_masks_the_token(tmp_path):
    logfile = tmp_path / "log.txt"
    setup_logging(logfile=str(logfile), token="secret-token")
    try:
        logging.getLogger("transports.cli_transport").warning("--user-token %s", "secret-token")
    finally:
        reset_logging()
    assert f"--user-token {MASK}" in logfile.read_text()
    assert "secret-token" not in logfile.read_text()


def test_setup_logging_again_replaces_the_handler(tmp_path):
    setup_logging(logfile=str(tmp_path / "first.log"))
    setup_logging(logfile=str(tmp_path / "second.log"))
    try:
        assert len(logging.getLogger("transports").handlers) == 1
    finally:
        reset_logging()
    assert logging.getLogger("transports").handlers == []


def test_log_level_from_environment(monkeypatch):
    monkeypatch.setenv("ABSTRACT_LOG_LEVEL", "DEBUG")
    assert load_options().log_level == "DEBUG"
    with pytest.raises(ValueError):
        load_options(log_level="chatty")


def test_print_error_goes_to_stderr(capsys):
    print_error("something broke")
    assert "something broke" in capsys.readouterr().err
