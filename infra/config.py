"""
Runtime Configuration
---------------------
Resolves where the catalog lives and which credentials the bot uses.

Rules:
- Secrets never in code or in the catalog file
- Command line values win over environment variables
- Missing tokens are a startup error, not a runtime one
"""

from dataclasses import dataclass
from typing import Mapping, Optional
import logging
import os

from core.errors import ConfigurationError


@dataclass(frozen=True)
class SecretConfig:
    """A secret read from the environment."""
    name: str
    env_var: str
    description: str = ""


BOT_TOKEN = SecretConfig("bot_token", "SLACK_BOT_TOKEN", "Bot OAuth token (xoxb-...)")
APP_TOKEN = SecretConfig("app_token", "SLACK_APP_TOKEN", "App-level token for Socket Mode (xapp-...)")

CONFIG_FILE_ENV = "BASHBOT_CONFIG_FILEPATH"
LOG_LEVEL_ENV = "LOG_LEVEL"
LOG_FORMAT_ENV = "LOG_FORMAT"
COMMAND_TIMEOUT_ENV = "BASHBOT_COMMAND_TIMEOUT"


@dataclass(frozen=True)
class Settings:
    """Everything the process needs besides the catalog itself."""
    config_file: str
    bot_token: str
    app_token: str
    log_level: str = "info"
    log_format: str = "text"
    command_timeout: Optional[float] = None

    def __repr__(self) -> str:
        # Never print tokens
        return (
            f"Settings(config_file={self.config_file!r}, log_level={self.log_level!r}, "
            f"log_format={self.log_format!r}, command_timeout={self.command_timeout!r})"
        )


def _pick(value: Optional[str], env: Mapping[str, str], env_var: str, default: str = "") -> str:
    if value:
        return value
    return env.get(env_var, default) or default


def _timeout(raw: str) -> Optional[float]:
    if not raw:
        return None
    try:
        timeout = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{COMMAND_TIMEOUT_ENV} must be a number, got {raw!r}") from e
    return timeout if timeout > 0 else None


def load_settings(
    config_file: Optional[str] = None,
    bot_token: Optional[str] = None,
    app_token: Optional[str] = None,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Resolve settings from explicit values, then the environment.

    Raises:
        ConfigurationError: if the config path or a token is missing
    """
    env = os.environ if env is None else env
    logger = logging.getLogger("bashbot.infra.config")

    settings = Settings(
        config_file=_pick(config_file, env, CONFIG_FILE_ENV),
        bot_token=_pick(bot_token, env, BOT_TOKEN.env_var),
        app_token=_pick(app_token, env, APP_TOKEN.env_var),
        log_level=_pick(log_level, env, LOG_LEVEL_ENV, "info"),
        log_format=_pick(log_format, env, LOG_FORMAT_ENV, "text"),
        command_timeout=_timeout(env.get(COMMAND_TIMEOUT_ENV, "")),
    )

    if not settings.config_file:
        raise ConfigurationError(f"Must define a config file (--config-file or {CONFIG_FILE_ENV})")
    if not settings.bot_token:
        raise ConfigurationError("Must define a slack bot token")
    if not settings.app_token:
        raise ConfigurationError("Must define a slack app token")

    logger.debug(f"Loaded settings: {settings!r}")
    return settings
