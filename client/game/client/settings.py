"""Client configuration via environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_NICK_LENGTH = 32


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BATTLESHIP_", env_file=".env", extra="ignore")

    host: str = Field(default="127.0.0.1", min_length=1)
    port: int = Field(default=5555, ge=1, le=65535)
    nick: str = Field(default="Player", min_length=1, max_length=MAX_NICK_LENGTH)
    connect_timeout_seconds: float = Field(default=10.0, gt=0)
    ping_timeout_seconds: float = Field(default=5.0, gt=0)
    liveness_check_interval_seconds: float = Field(default=1.0, gt=0)
    read_chunk_size: int = Field(default=4096, ge=1)
    log_dir: str | None = None

    @field_validator("nick")
    @classmethod
    def validate_nick(cls, v: str) -> str:
        # the nick travels as a single protocol token
        if any(ch.isspace() for ch in v):
            raise ValueError("nick must not contain whitespace")
        return v
