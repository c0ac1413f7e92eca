from pathlib import Path

import pytest
from pydantic import ValidationError

from calculator_mcp.settings import ClientConfig, ServerConfig, TransportType


@pytest.fixture(params=list(TransportType))
def server_config(request) -> ServerConfig:
    return ServerConfig(transport=request.param, port=9000, request_timeout=5)


def test_server_config_str_representation(server_config):
    """Test that string representation contains all necessary information."""
    str_repr = str(server_config)
    assert server_config.transport.value in str_repr
    assert server_config.host in str_repr
    assert str(server_config.port) in str_repr
    assert str(server_config.request_timeout) in str_repr


def test_server_defaults():
    config = ServerConfig()

    assert config.transport == TransportType.STREAMABLE_HTTP
    assert config.host == "0.0.0.0"
    assert config.port == 8080
    assert config.request_timeout is None
    assert config.random_seed is None


def test_server_from_env():
    config = ServerConfig.from_env(
        {
            "TRANSPORT": "stdio",
            "PORT": "9090",
            "LOG_LEVEL": "DEBUG",
            "LOGFILE": "server.log",
            "REQUEST_TIMEOUT": "2.5",
            "RANDOM_SEED": "42",
        }
    )

    assert config.transport == TransportType.STDIO
    assert config.port == 9090
    assert config.log_level == "DEBUG"
    assert config.logfile == Path("server.log")
    assert config.request_timeout == 2.5
    assert config.random_seed == 42


def test_empty_env_values_use_defaults():
    config = ServerConfig.from_env({"TRANSPORT": "", "PORT": ""})

    assert config.transport == TransportType.STREAMABLE_HTTP
    assert config.port == 8080


@pytest.mark.parametrize(
    "environ",
    [{"PORT": "0"}, {"PORT": "http"}, {"TRANSPORT": "carrier-pigeon"}, {"REQUEST_TIMEOUT": "0"}],
)
def test_invalid_env(environ):
    with pytest.raises(ValidationError):
        ServerConfig.from_env(environ)


def test_from_toml(tmp_path):
    """Test loading ServerConfig from TOML file."""
    config_path = tmp_path / "config.toml"
    toml_content = """
    [server]
    transport = "stdio"
    port = 9999
    request_timeout = 30.0
    """
    config_path.write_text(toml_content)

    config = ServerConfig.from_toml(config_path)
    assert config.transport == TransportType.STDIO
    assert config.port == 9999
    assert config.request_timeout == 30.0
    assert config.host == "0.0.0.0"


def test_client_defaults():
    config = ClientConfig()

    assert config.transport == TransportType.STDIO
    assert config.server_url == "http://localhost:8080/mcp"
    assert config.server_command == "calculator-mcp-server"


@pytest.mark.parametrize("transport", ["http", "streamable-http"])
def test_client_http_transport(transport):
    config = ClientConfig.from_env(
        {"TRANSPORT": transport, "SERVER_URL": "http://example.com:9000/mcp"}
    )

    assert config.transport == TransportType.STREAMABLE_HTTP
    assert config.server_url == "http://example.com:9000/mcp"
