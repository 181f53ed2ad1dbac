from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from teleterm.constants import (
    DEFAULT_COLOR,
    DEFAULT_HOST_URL,
    DEFAULT_TERMINAL_TYPE,
    LOG_FLUSH_DELAY_S,
    OPEN_TIMEOUT_S,
    SETTLE_DELAY_S,
)
from teleterm.utils import hex_to_rgb


class LogForwardingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    enabled: bool = False
    # Derived from host_url when unset (ws://host:port -> http://host:port)
    http_url: Optional[str] = None
    flush_delay_s: float = Field(default=LOG_FLUSH_DELAY_S, gt=0)


class TerminalCardConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str = Field(..., min_length=1)
    color: str = DEFAULT_COLOR

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Accept #rgb or #rrggbb hex colors only."""
        if hex_to_rgb(v) is None:
            raise ValueError(f"Invalid color: {v}. Expected a hex color such as '#00ff00'")
        return v


def _default_terminals() -> List[TerminalCardConfig]:
    return [
        TerminalCardConfig(name="Terminal 1", color="#00ff00"),
        TerminalCardConfig(name="Terminal 2", color="#00ffff"),
        TerminalCardConfig(name="Terminal 3", color="#ff00ff"),
    ]


class ClientConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    host_url: str = DEFAULT_HOST_URL
    terminal_type: str = DEFAULT_TERMINAL_TYPE
    working_dir: str = Field(default_factory=lambda: str(Path.cwd()))
    settle_delay_s: float = Field(default=SETTLE_DELAY_S, ge=0)
    open_timeout_s: float = Field(default=OPEN_TIMEOUT_S, gt=0)
    log_forwarding: LogForwardingConfig = Field(default_factory=LogForwardingConfig)
    terminals: List[TerminalCardConfig] = Field(default_factory=_default_terminals)

    @field_validator("host_url")
    @classmethod
    def validate_host_url(cls, v: str) -> str:
        if not v.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid host_url: {v}. Expected a ws:// or wss:// URL")
        return v

    @field_validator("working_dir")
    @classmethod
    def expand_working_dir(cls, v: str) -> str:
        return str(Path(v).expanduser())

    def console_log_url(self) -> str:
        """HTTP base URL the log forwarder posts to."""
        if self.log_forwarding.http_url:
            return self.log_forwarding.http_url.rstrip("/")
        if self.host_url.startswith("wss://"):
            return "https://" + self.host_url[len("wss://") :].rstrip("/")
        return "http://" + self.host_url[len("ws://") :].rstrip("/")
