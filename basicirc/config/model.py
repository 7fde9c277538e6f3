from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from ..constants import IRC_DEFAULT_HOST, IRC_DEFAULT_PORT, IRC_DEFAULT_REAL_NAME


class SessionConfig(BaseModel):
    """Validated, immutable connection settings for one IRC session.

    The JSON file uses the short keys (``real``, ``sys``, ``user``,
    ``reconnect``); the model exposes descriptive attribute names and accepts
    either spelling.

    Attributes:
        server: Hostname or IPv4 address of the IRC server.
        port: TCP port, 6667 when unset or zero.
        nick: Nickname sent with NICK.
        real_name: Real name for the USER line.
        host: Host token for the USER line.
        system_name: System token for the USER line.
        user_name: User name for the USER line and NickServ identification.
        channels: Channels joined in order after registration.
        password: NickServ password, empty to skip identification.
        reconnect: Enables the bounded reconnect policy of the runner.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    server: str = Field(min_length=1)
    port: int = IRC_DEFAULT_PORT
    nick: str = Field(min_length=1)
    real_name: str = Field(default=IRC_DEFAULT_REAL_NAME, alias="real")
    host: str = IRC_DEFAULT_HOST
    system_name: str = Field(min_length=1, alias="sys")
    user_name: str = Field(min_length=1, alias="user")
    channels: list[str] = Field(min_length=1)
    password: str = ""
    reconnect: bool = False

    @field_validator("server", "nick", "system_name", "user_name", mode="before")
    @classmethod
    def strip_required(cls, v: Any) -> Any:
        """Strip surrounding whitespace so blank values fail min_length."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("port", mode="before")
    @classmethod
    def default_port(cls, v: Any) -> Any:
        if v is None or v == 0:
            return IRC_DEFAULT_PORT
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("real_name", "host", mode="before")
    @classmethod
    def default_blank(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return IRC_DEFAULT_REAL_NAME if info.field_name == "real_name" else IRC_DEFAULT_HOST
        return v

    @field_validator("password", mode="before")
    @classmethod
    def default_password(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("channels", mode="before")
    @classmethod
    def validate_channels(cls, v: Any) -> list[str]:
        """Drop blank entries, keep the configured join order."""
        if not isinstance(v, list):
            raise ValueError("channels must be a list")
        return [c.strip() for c in v if isinstance(c, str) and c.strip()]

    @model_validator(mode="after")
    def validate_tokens(self) -> SessionConfig:
        """USER line tokens must be single words."""
        for name in ("nick", "user_name", "system_name", "host"):
            if any(ch.isspace() for ch in getattr(self, name)):
                raise ValueError(f"{name} must not contain whitespace")
        return self

    @property
    def endpoint(self) -> str:
        """``server:port`` string used for resolution and logging."""
        return f"{self.server}:{self.port}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionConfig:
        return cls.model_validate(dict(data))
