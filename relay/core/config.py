# relay/core/config.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - Configuration
-----------------------------------
Central configuration for the relay, including:

- Matrix bot credentials and the single allowed user,
- the local Ollama chat endpoint, model and sampling defaults,
- command/session behaviour toggles,
- the optional local status API.

Values are read (highest priority first) from constructor kwargs,
environment variables (prefix ``RELAY_``, nested with ``__``), a ``.env``
file and finally ``config.toml`` using the ``[bot]`` / ``[llm]`` layout:

    [bot]
    homeserver = "https://matrix.example.org"
    username = "llm-bot"
    password = "..."
    user_id = "@me:example.org"     # the only user the bot answers

    [llm]
    model = "llama3.2:latest"
    default_prompt = "You are a helpful assistant."
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple, Type, Union

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_PATH: Path = Path("config.toml")
DEFAULT_OLLAMA_URL: str = "http://localhost:11434/api/chat"

# Seeds are drawn uniformly from [0, SEED_RANGE).
SEED_RANGE: int = 99_999_999


# ---------------------------------------------------------------------------
# Nested sections
# ---------------------------------------------------------------------------


class BotSettings(BaseModel):
    """Matrix side of the relay ([bot] table)."""

    homeserver: str = "https://matrix.org"
    username: str = ""
    password: str = ""
    allowed_user_id: str = Field(
        default="",
        validation_alias=AliasChoices("allowed_user_id", "user_id"),
        description="Matrix ID of the only user the bot talks to.",
    )
    device_name: str = "matrix-ollama-relay"


class LLMSettings(BaseModel):
    """Ollama side of the relay ([llm] table)."""

    model: str = "llama3.2:latest"
    default_prompt: str = "You are a helpful assistant."
    url: str = DEFAULT_OLLAMA_URL

    # Bounded request timeout (seconds) for a single /api/chat call.
    timeout_s: float = 120.0

    # Sampling defaults. None means "let Ollama decide" and is not sent.
    temperature: Optional[float] = 0.7
    top_k: Optional[int] = 40
    top_p: Optional[float] = 0.9
    seed_range: int = Field(default=SEED_RANGE, gt=0)


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """
    Global configuration for the relay.

    Use `get_settings()` for the process-wide instance, or
    `Settings.load(path)` to read an explicit TOML file.
    """

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        toml_file=DEFAULT_CONFIG_PATH,
        extra="ignore",
    )

    debug: bool = False

    bot: BotSettings = Field(default_factory=BotSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)

    # --- Command / session behaviour ---------------------------------------
    # False keeps literal prefix matching ("/clearfoo" runs /clear).
    strict_commands: bool = False
    # 0 keeps the full history; N > 0 keeps at most the last N turns. Trimming
    # never leaves an assistant turn first, so an odd N keeps N - 1 after a reply.
    max_history_turns: int = Field(default=0, ge=0)

    # --- Local status API (FastAPI + uvicorn) ------------------------------
    status_api_enabled: bool = False
    status_api_host: str = "127.0.0.1"
    status_api_port: int = 8008

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @classmethod
    def load(cls, path: Union[Path, str]) -> "Settings":
        """Build settings reading the given TOML file instead of ./config.toml."""

        class _FileSettings(cls):  # type: ignore[valid-type, misc]
            model_config = SettingsConfigDict(toml_file=Path(path))

        return _FileSettings()

    def missing_bot_fields(self) -> List[str]:
        """Names of [bot] fields that must be set before logging in."""
        required = ("homeserver", "username", "password", "allowed_user_id")
        return [name for name in required if not getattr(self.bot, name)]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings instance (read once)."""
    return Settings()
