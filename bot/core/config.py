from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv


class ConfigError(RuntimeError):
    pass


@dataclass(slots=True)
class DiscordConfig:
    token: str = ""
    token_file: str = "bot_token.txt"
    application_id: int | None = None
    sync_commands_on_start: bool = True
    status_text: str = "Managing tickets"
    activity_type: str = "playing"
    post_admin_panel_on_ready: bool = True


@dataclass(slots=True)
class DatabaseConfig:
    url: str = "sqlite:///./data/tickets.db"
    pool_min_size: int = 1
    pool_max_size: int = 5
    timeout_seconds: int = 30


@dataclass(slots=True)
class RedisConfig:
    enabled: bool = False
    url: str = "redis://localhost:6379/0"


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    directory: str = "logs"
    file_name: str = "bot.log"
    max_bytes: int = 5_000_000
    backup_count: int = 5
    json_console: bool = False


@dataclass(slots=True)
class TicketConfig:
    helper_role_name: str = "Helper"
    moderator_role_name: str = "Moderator"
    manager_role_names: list[str] = field(
        default_factory=lambda: ["Minecraft Manager", "Discord Manager"]
    )
    admin_role_names: list[str] = field(default_factory=list)
    category_name: str = "Tickets"
    channel_prefix: str = "ticket-"
    cooldown_seconds: int = 60
    deletion_delay_seconds: int = 10
    log_file: str = "tickets.txt"
    message_log_file: str | None = None
    inline_log_limit: int = 2000
    ticket_channel_id: int | None = None
    log_channel_id: int | None = None
    target_guild_id: int | None = None
    panel_title: str = "Echo Tickets"


@dataclass(slots=True)
class WebhookLogConfig:
    enabled: bool = False
    url: str = ""


@dataclass(slots=True)
class FastApiConfig:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    api_key: str = ""


@dataclass(slots=True)
class ConsoleConfig:
    enabled: bool = False


@dataclass(slots=True)
class AppConfig:
    discord: DiscordConfig = field(default_factory=DiscordConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tickets: TicketConfig = field(default_factory=TicketConfig)
    webhook_log: WebhookLogConfig = field(default_factory=WebhookLogConfig)
    fastapi: FastApiConfig = field(default_factory=FastApiConfig)
    console: ConsoleConfig = field(default_factory=ConsoleConfig)
    enabled_extensions: list[str] = field(
        default_factory=lambda: ["cogs.events", "cogs.interactions"]
    )


def _get_env_str(key: str, fallback: str | None = None) -> str | None:
    value = os.getenv(key)
    if value is None:
        return fallback
    cleaned = value.strip()
    return cleaned if cleaned else fallback


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_optional_id(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Expected a numeric Discord ID, got {value!r}") from exc


def _deep_get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    node: Any = data
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return raw


def read_token_file(path: Path) -> str:
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8").strip()


def store_token_file(path: Path, token: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(token.strip(), encoding="utf-8")


def _load_ticket_config(raw: dict[str, Any]) -> TicketConfig:
    defaults = TicketConfig()
    section = dict(_deep_get(raw, "tickets", default={}))
    message_log = section.get("message_log_file")
    return TicketConfig(
        helper_role_name=str(section.get("helper_role_name", defaults.helper_role_name)),
        moderator_role_name=str(section.get("moderator_role_name", defaults.moderator_role_name)),
        manager_role_names=[
            str(name) for name in list(section.get("manager_role_names", defaults.manager_role_names))
        ],
        admin_role_names=[str(name) for name in list(section.get("admin_role_names", []))],
        category_name=str(section.get("category_name", defaults.category_name)),
        channel_prefix=str(section.get("channel_prefix", defaults.channel_prefix)),
        cooldown_seconds=_as_int(section.get("cooldown_seconds"), defaults.cooldown_seconds),
        deletion_delay_seconds=_as_int(
            section.get("deletion_delay_seconds"), defaults.deletion_delay_seconds
        ),
        log_file=str(section.get("log_file", defaults.log_file)),
        message_log_file=str(message_log) if message_log else None,
        inline_log_limit=_as_int(section.get("inline_log_limit"), defaults.inline_log_limit),
        ticket_channel_id=_as_optional_id(
            _get_env_str("TICKET_CHANNEL_ID", section.get("ticket_channel_id"))
        ),
        log_channel_id=_as_optional_id(_get_env_str("LOG_CHANNEL_ID", section.get("log_channel_id"))),
        target_guild_id=_as_optional_id(
            _get_env_str("TARGET_GUILD_ID", section.get("target_guild_id"))
        ),
        panel_title=str(section.get("panel_title", defaults.panel_title)),
    )


def load_config(config_path: Path) -> AppConfig:
    env_path = config_path.parent.parent / ".env"
    load_dotenv(env_path)
    raw = _load_yaml(config_path)

    token_file = str(_deep_get(raw, "discord", "token_file", default="bot_token.txt"))
    discord_token = _get_env_str("DISCORD_TOKEN", _deep_get(raw, "discord", "token"))
    if discord_token and "${" in discord_token:
        discord_token = None
    if not discord_token:
        discord_token = read_token_file(Path(token_file))

    discord_cfg = DiscordConfig(
        token=discord_token,
        token_file=token_file,
        application_id=_as_optional_id(
            _get_env_str("DISCORD_APPLICATION_ID", _deep_get(raw, "discord", "application_id"))
        ),
        sync_commands_on_start=_as_bool(
            _get_env_str("SYNC_COMMANDS"),
            _as_bool(_deep_get(raw, "discord", "sync_commands_on_start"), True),
        ),
        status_text=str(_deep_get(raw, "discord", "status_text", default="Managing tickets")),
        activity_type=str(_deep_get(raw, "discord", "activity_type", default="playing")),
        post_admin_panel_on_ready=_as_bool(
            _deep_get(raw, "discord", "post_admin_panel_on_ready"), True
        ),
    )

    database_cfg = DatabaseConfig(
        url=str(
            _get_env_str(
                "DATABASE_URL", _deep_get(raw, "database", "url", default="sqlite:///./data/tickets.db")
            )
        ),
        pool_min_size=_as_int(_deep_get(raw, "database", "pool_min_size"), 1),
        pool_max_size=_as_int(_deep_get(raw, "database", "pool_max_size"), 5),
        timeout_seconds=_as_int(_deep_get(raw, "database", "timeout_seconds"), 30),
    )

    redis_cfg = RedisConfig(
        enabled=_as_bool(_get_env_str("REDIS_ENABLED"), _as_bool(_deep_get(raw, "redis", "enabled"), False)),
        url=str(_get_env_str("REDIS_URL", _deep_get(raw, "redis", "url", default="redis://localhost:6379/0"))),
    )

    logging_cfg = LoggingConfig(
        level=str(_get_env_str("LOG_LEVEL", _deep_get(raw, "logging", "level", default="INFO"))),
        directory=str(_deep_get(raw, "logging", "directory", default="logs")),
        file_name=str(_deep_get(raw, "logging", "file_name", default="bot.log")),
        max_bytes=_as_int(_deep_get(raw, "logging", "max_bytes"), 5_000_000),
        backup_count=_as_int(_deep_get(raw, "logging", "backup_count"), 5),
        json_console=_as_bool(_deep_get(raw, "logging", "json_console"), False),
    )

    webhook_cfg = WebhookLogConfig(
        enabled=_as_bool(_deep_get(raw, "webhook_log", "enabled"), False),
        url=str(_get_env_str("WEBHOOK_LOG_URL", _deep_get(raw, "webhook_log", "url", default=""))),
    )

    fastapi_cfg = FastApiConfig(
        enabled=_as_bool(_deep_get(raw, "fastapi", "enabled"), False),
        host=str(_deep_get(raw, "fastapi", "host", default="127.0.0.1")),
        port=_as_int(_deep_get(raw, "fastapi", "port"), 8000),
        api_key=str(_get_env_str("API_KEY", _deep_get(raw, "fastapi", "api_key", default=""))),
    )

    console_cfg = ConsoleConfig(enabled=_as_bool(_deep_get(raw, "console", "enabled"), False))

    enabled_extensions = [
        str(ext)
        for ext in list(
            _deep_get(raw, "enabled_extensions", default=["cogs.events", "cogs.interactions"])
        )
    ]

    return AppConfig(
        discord=discord_cfg,
        database=database_cfg,
        redis=redis_cfg,
        logging=logging_cfg,
        tickets=_load_ticket_config(raw),
        webhook_log=webhook_cfg,
        fastapi=fastapi_cfg,
        console=console_cfg,
        enabled_extensions=enabled_extensions,
    )
