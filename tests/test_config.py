import sys
from unittest import mock

import pytest

from modularmidi.config import (
    ConfigError,
    HttpConfig,
    find_root_path,
    load_http_config,
    load_udp_config,
)

FULL_CONF = """\
[http]
listen_port = 8080
backend_api_port = 9090
backend_api_host = localhost
backend_api_protocol = http

[udp]
listen_port = 5000
send_port = 5001
backend_host = 127.0.0.1
"""


@pytest.fixture
def conf_file(tmp_path):
    path = tmp_path / "modularMidi.conf"
    path.write_text(FULL_CONF, encoding="utf-8")
    return path


def test_load_http_config_reads_all_keys(conf_file):
    cfg = load_http_config(conf_file)
    assert cfg == HttpConfig(
        listen_port="8080",
        backend_api_port="9090",
        backend_api_host="localhost",
        backend_api_protocol="http",
    )


def test_backend_api_location_uses_listen_port(conf_file):
    cfg = load_http_config(conf_file)
    assert cfg.backend_api_location() == "http://localhost:8080"


def test_load_udp_config_reads_all_keys(conf_file):
    cfg = load_udp_config(conf_file)
    assert (cfg.listen_port, cfg.send_port, cfg.backend_host) == ("5000", "5001", "127.0.0.1")


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError, match="Failed to read config file"):
        load_http_config(tmp_path / "absent.conf")


def test_missing_key_names_section_and_key(tmp_path):
    path = tmp_path / "modularMidi.conf"
    path.write_text("[http]\nlisten_port = 1\nbackend_api_port = 2\nbackend_api_host = h\n")
    with pytest.raises(ConfigError, match=r"Missing key \[http\] backend_api_protocol"):
        load_http_config(path)


def test_missing_section_raises(tmp_path):
    path = tmp_path / "modularMidi.conf"
    path.write_text("[http]\nlisten_port = 1\n")
    with pytest.raises(ConfigError, match=r"Missing key \[udp\] listen_port"):
        load_udp_config(path)


def test_keys_are_case_sensitive(tmp_path):
    path = tmp_path / "modularMidi.conf"
    path.write_text(
        "[http]\nLISTEN_PORT = 1\nbackend_api_port = 2\n"
        "backend_api_host = h\nbackend_api_protocol = p\n"
    )
    with pytest.raises(ConfigError, match="listen_port"):
        load_http_config(path)


def test_root_keys_do_not_leak_into_sections(tmp_path):
    path = tmp_path / "modularMidi.conf"
    path.write_text("send_port = 7\n[udp]\nlisten_port = 1\nbackend_host = h\n")
    with pytest.raises(ConfigError, match="send_port"):
        load_udp_config(path)


def test_quoted_values_and_inline_comments(tmp_path):
    path = tmp_path / "modularMidi.conf"
    path.write_text(
        '[http]\nlisten_port = "8080"\nbackend_api_port = 9090 ; api\n'
        "backend_api_host = example.com # host\nbackend_api_protocol = https\n"
    )
    cfg = load_http_config(path)
    assert (cfg.listen_port, cfg.backend_api_port, cfg.backend_api_host) == (
        "8080",
        "9090",
        "example.com",
    )


def test_find_root_path_is_grandparent_of_program(tmp_path):
    program = tmp_path / "bin" / "tool"
    with mock.patch.object(sys, "argv", [str(program)]):
        assert find_root_path() == tmp_path.resolve()