import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

SERVER_ENV: Dict[str, str] = {
    "transport": "TRANSPORT",
    "host": "HOST",
    "port": "PORT",
    "log_level": "LOG_LEVEL",
    "logfile": "LOGFILE",
    "request_timeout": "REQUEST_TIMEOUT",
    "random_seed": "RANDOM_SEED",
}

CLIENT_ENV: Dict[str, str] = {
    "transport": "TRANSPORT",
    "server_url": "SERVER_URL",
    "server_command": "SERVER_COMMAND",
}


class TransportType(str, Enum):
    STDIO = "stdio"
    STREAMABLE_HTTP = "streamable-http"


def _read_env(mapping: Dict[str, str], environ: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Settings present in the environment; empty variables fall back to defaults"""
    if environ is None:
        load_dotenv()
        environ = os.environ
    return {field: environ[var] for field, var in mapping.items() if environ.get(var)}


class ServerConfig(BaseModel):
    transport: TransportType = TransportType.STREAMABLE_HTTP
    host: str = "0.0.0.0"
    port: int = Field(8080, ge=1, le=65535)
    log_level: str = "INFO"
    logfile: Optional[Path] = None
    request_timeout: Optional[float] = Field(None, gt=0)
    random_seed: Optional[int] = None

    def __str__(self):
        return f"transport={self.transport.value}\nhost={self.host}\nport={self.port}\nlog_level={self.log_level}\nrequest_timeout={self.request_timeout}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        return cls(**_read_env(SERVER_ENV, environ))

    @classmethod
    def from_toml(cls, path: Path) -> "ServerConfig":
        with path.open("rb") as f:
            config = tomllib.load(f)["server"]

        return cls(**config)


class ClientConfig(BaseModel):
    transport: TransportType = TransportType.STDIO
    server_url: str = "http://localhost:8080/mcp"
    server_command: str = "calculator-mcp-server"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        values = _read_env(CLIENT_ENV, environ)
        # "http" is the short name other MCP tooling uses
        if values.get("transport") == "http":
            values["transport"] = TransportType.STREAMABLE_HTTP.value
        return cls(**values)
