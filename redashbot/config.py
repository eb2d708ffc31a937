"""
Configuration utilities for the Redash Slack bot.
Reads Slack credentials, the Redash host registry and screenshot/invite
settings from the environment (optionally via a local .env file).
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from redashbot.errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_MESSAGE_EVENTS = "direct_message,direct_mention,mention"
DEFAULT_INVITE_MESSAGE_EVENTS = "direct_message,direct_mention,mention"
KNOWN_TRIGGERS = frozenset({"direct_message", "direct_mention", "mention", "ambient"})

HOSTS_EXAMPLE = 'REDASH_HOSTS_AND_API_KEYS="http://redash1.example.com;TOKEN1,http://redash2.example.com;TOKEN2"'


def _flag_env(env: Mapping[str, str], name: str) -> bool:
    """Any non-empty value turns the flag on, except the usual negatives."""
    value = (env.get(name) or "").strip().lower()
    return bool(value) and value not in {"0", "false", "no", "off"}


# ---------------------------------------------------------------------------
# Host registry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HostConfig:
    """One Redash deployment the bot watches."""

    url: str
    alias: str
    api_key: str = field(repr=False)

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/")

    @property
    def alias_url(self) -> str:
        return self.alias.rstrip("/")

    @property
    def domain(self) -> str:
        """Host without its scheme, as it appears inside posted URLs."""
        return self.url.replace("http://", "").replace("https://", "").rstrip("/")


def _parse_host_entry(entry: str) -> HostConfig:
    parts = [p.strip() for p in entry.split(";")]
    if len(parts) == 2:
        host, key = parts
        alias = host
    elif len(parts) == 3:
        host, alias, key = parts
        alias = alias or host
    else:
        raise ConfigurationError(
            f"Malformed Redash host entry {entry!r}: expected host;key or host;alias;key"
        )
    if not host or not key:
        raise ConfigurationError(f"Malformed Redash host entry {entry!r}: host and key are required")
    return HostConfig(url=host, alias=alias, api_key=key)


def parse_hosts(env: Mapping[str, str]) -> Dict[str, HostConfig]:
    """Build the host -> HostConfig mapping from either the single-host or the list form."""
    single_host = (env.get("REDASH_HOST") or "").strip()
    single_key = (env.get("REDASH_API_KEY") or "").strip()
    hosts_list = (env.get("REDASH_HOSTS_AND_API_KEYS") or "").strip()

    if single_host and single_key:
        if hosts_list:
            _LOGGER.warning("Both REDASH_HOST and REDASH_HOSTS_AND_API_KEYS are set; using REDASH_HOST.")
        alias = (env.get("REDASH_HOST_ALIAS") or "").strip() or single_host
        return {single_host: HostConfig(url=single_host, alias=alias, api_key=single_key)}

    if hosts_list:
        hosts: Dict[str, HostConfig] = {}
        for entry in hosts_list.split(","):
            if not entry.strip():
                continue
            host = _parse_host_entry(entry.strip())
            hosts[host.url] = host
        if hosts:
            return hosts

    raise ConfigurationError(
        "Specify REDASH_HOST and REDASH_API_KEY in environment values, "
        f"or set multiple Redash configs like {HOSTS_EXAMPLE}"
    )


def parse_triggers(raw: str, *, name: str) -> Tuple[str, ...]:
    triggers = tuple(t.strip() for t in raw.split(",") if t.strip())
    unknown = [t for t in triggers if t not in KNOWN_TRIGGERS]
    if unknown:
        raise ConfigurationError(f"{name} contains unknown message events: {', '.join(unknown)}")
    if not triggers:
        raise ConfigurationError(f"{name} must list at least one message event")
    return triggers


def parse_allowed_domains(raw: Optional[str]) -> Optional[List[str]]:
    """Split RESTRICT_INVITATIONS_BY_EMAIL_DOMAIN into bare domains ('@x.com' -> 'x.com')."""
    if raw is None or not raw.strip():
        return None
    domains = []
    for value in raw.split(","):
        value = value.strip()
        if value.startswith("@"):
            value = value[1:].strip()
        if value:
            domains.append(value)
    return domains


# ---------------------------------------------------------------------------
# Dataclass Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Config:
    """Immutable runtime configuration, built once at startup."""

    slack_bot_token: str = field(repr=False)
    hosts: Dict[str, HostConfig]
    slack_app_token: Optional[str] = field(default=None, repr=False)
    slack_signing_secret: Optional[str] = field(default=None, repr=False)
    port: int = 3000
    message_events: Tuple[str, ...] = ("direct_message", "direct_mention", "mention")
    invite_message_events: Tuple[str, ...] = ("direct_message", "direct_mention", "mention")
    invite_email_domains: Optional[List[str]] = None
    browser_path: Optional[str] = None
    debug: bool = False
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    settle_delay: float = 2.0
    max_browsers: int = 0

    @property
    def request_timeout(self) -> Tuple[float, float]:
        # Tuple -> (connect timeout, read timeout)
        return (self.connect_timeout, self.read_timeout)

    @property
    def socket_mode(self) -> bool:
        return bool(self.slack_app_token)


_cached_config: Optional[Config] = None


def build_config(env: Mapping[str, str]) -> Config:
    """Validate the given environment mapping and return a Config."""
    bot_token = (env.get("SLACK_BOT_TOKEN") or "").strip()
    if not bot_token:
        raise ConfigurationError("Specify SLACK_BOT_TOKEN in environment values")

    hosts = parse_hosts(env)

    try:
        port = int(env.get("SLACK_PORT", "3000"))
        connect_timeout = float(env.get("REDASH_CONNECT_TIMEOUT", "10"))
        read_timeout = float(env.get("REDASH_READ_TIMEOUT", "60"))
        settle_delay = float(env.get("SCREENSHOT_SETTLE_SECONDS", "2"))
        max_browsers = int(env.get("SCREENSHOT_MAX_BROWSERS", "0"))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

    return Config(
        slack_bot_token=bot_token,
        hosts=hosts,
        slack_app_token=env.get("SLACK_APP_TOKEN") or None,
        slack_signing_secret=env.get("SLACK_SIGNING_SECRET") or None,
        port=port,
        message_events=parse_triggers(
            env.get("SLACK_MESSAGE_EVENTS") or DEFAULT_MESSAGE_EVENTS, name="SLACK_MESSAGE_EVENTS"
        ),
        invite_message_events=parse_triggers(
            env.get("SLACK_INVITE_MESSAGE_EVENTS") or DEFAULT_INVITE_MESSAGE_EVENTS,
            name="SLACK_INVITE_MESSAGE_EVENTS",
        ),
        invite_email_domains=parse_allowed_domains(env.get("RESTRICT_INVITATIONS_BY_EMAIL_DOMAIN")),
        browser_path=env.get("CHROMIUM_BROWSER_PATH") or None,
        debug=_flag_env(env, "DEBUG"),
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        settle_delay=settle_delay,
        max_browsers=max(0, max_browsers),
    )


def load_config(refresh: bool = False) -> Config:
    """
    Load configuration from environment and cache the result.
    Parameters
    ----------
    refresh : bool
        If True, re-read environment variables and reinitialize Config.
    """
    global _cached_config
    if _cached_config is not None and not refresh:
        return _cached_config

    load_dotenv(override=False)
    _cached_config = build_config(os.environ)

    _LOGGER.debug(
        "Loaded configuration: hosts=%s | events=%s | socket_mode=%s",
        ", ".join(_cached_config.hosts), ",".join(_cached_config.message_events), _cached_config.socket_mode,
    )
    return _cached_config


__all__ = [
    "Config",
    "HostConfig",
    "build_config",
    "load_config",
    "parse_hosts",
    "parse_triggers",
    "parse_allowed_domains",
]
