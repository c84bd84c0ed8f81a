"""
Health configuration - Loads and validates servermon configuration.

Three files, TOML or JSON (chosen by suffix):

config.toml
  [smtp]         hostname, port, username, password, sender, subject, starttls
  [healthcheck]  try_with_backoff, max_attempts, retry_interval, timeout,
                 workers, notify_recovered
  [debug]        mock_fetch, mock_down_ids

servers.toml
  [[servers]]    id, label, url, protocol

users.toml
  [[users]]      name, email, enabled
"""

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from servermon.core.entities import Endpoint, EndpointId, Recipient, SmtpSettings
from servermon.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class HealthcheckSettings:
    """Probe and pass options."""

    try_with_backoff: bool = True
    max_attempts: int = 3
    retry_interval: float = 60.0
    timeout: float = 30.0
    workers: int = 1
    notify_recovered: bool = False


@dataclass(frozen=True)
class DebugSettings:
    mock_fetch: bool = False
    mock_down_ids: Tuple[EndpointId, ...] = ()


@dataclass(frozen=True)
class AppConfig:
    """Validated application configuration."""

    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    healthcheck: HealthcheckSettings = field(default_factory=HealthcheckSettings)
    debug: DebugSettings = field(default_factory=DebugSettings)


def read_document(path: PathLike) -> Dict[str, Any]:
    """
    Read a TOML or JSON document.

    Args:
        path: File to read; ``.json`` is parsed as JSON, anything else as TOML

    Returns:
        Decoded document

    Raises:
        ConfigError: If the file is missing or cannot be parsed
    """
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")

    try:
        if config_file.suffix == ".json":
            with open(config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            with open(config_file, "rb") as f:
                data = tomllib.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {config_file}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a table/object: {config_file}")
    return data


def load_config(config_path: PathLike = "config.toml") -> AppConfig:
    """
    Load general configuration.

    The SMTP password falls back to the ``SMTP_PASSWORD`` environment variable.

    Args:
        config_path: Path to config file

    Returns:
        AppConfig: Validated configuration

    Raises:
        ConfigError: If the file is missing or invalid
    """
    data = read_document(config_path)

    smtp = _section(data, "smtp")
    healthcheck = _section(data, "healthcheck")
    debug = _section(data, "debug")

    password = _get(smtp, "password", str, "", "smtp") or os.environ.get("SMTP_PASSWORD", "")

    config = AppConfig(
        smtp=SmtpSettings(
            hostname=_get(smtp, "hostname", str, "", "smtp"),
            port=_get(smtp, "port", int, 587, "smtp"),
            username=_get(smtp, "username", str, "", "smtp"),
            password=password,
            sender=_get(smtp, "sender", str, "monitor@localhost", "smtp"),
            subject=_get(smtp, "subject", str, "IMPORTANT: Servers have gone down", "smtp"),
            starttls=_get(smtp, "starttls", bool, True, "smtp"),
        ),
        healthcheck=HealthcheckSettings(
            try_with_backoff=_get(healthcheck, "try_with_backoff", bool, True, "healthcheck"),
            max_attempts=_get(healthcheck, "max_attempts", int, 3, "healthcheck"),
            retry_interval=float(_get(healthcheck, "retry_interval", (int, float), 60.0, "healthcheck")),
            timeout=float(_get(healthcheck, "timeout", (int, float), 30.0, "healthcheck")),
            workers=_get(healthcheck, "workers", int, 1, "healthcheck"),
            notify_recovered=_get(healthcheck, "notify_recovered", bool, False, "healthcheck"),
        ),
        debug=DebugSettings(
            mock_fetch=_get(debug, "mock_fetch", bool, False, "debug"),
            mock_down_ids=tuple(
                _validate_id(value, "debug.mock_down_ids")
                for value in _get(debug, "mock_down_ids", list, [], "debug")
            ),
        ),
    )

    if config.healthcheck.max_attempts < 1:
        raise ConfigError("Field 'max_attempts' must be >= 1 in section: healthcheck")
    if config.healthcheck.retry_interval < 0:
        raise ConfigError("Field 'retry_interval' must be >= 0 in section: healthcheck")
    if config.healthcheck.timeout <= 0:
        raise ConfigError("Field 'timeout' must be > 0 in section: healthcheck")
    if config.healthcheck.workers < 1:
        raise ConfigError("Field 'workers' must be >= 1 in section: healthcheck")

    logger.info("Loaded config from %s", config_path)
    return config


def load_servers(servers_path: PathLike = "servers.toml") -> List[Endpoint]:
    """
    Load the ordered endpoint list.

    Args:
        servers_path: Path to servers file

    Returns:
        List[Endpoint]: Endpoints in file order

    Raises:
        ConfigError: If the file is invalid or IDs are duplicated
    """
    data = read_document(servers_path)
    entries = data.get("servers", [])
    if not isinstance(entries, list):
        raise ConfigError("Field 'servers' must be a list")

    endpoints: List[Endpoint] = []
    seen = set()
    for index, entry in enumerate(entries):
        endpoint = _validate_server(index, entry)
        if endpoint.id in seen:
            raise ConfigError(f"Duplicate server id: {endpoint.id!r}")
        seen.add(endpoint.id)
        endpoints.append(endpoint)

    logger.info("Loaded %d servers from %s", len(endpoints), servers_path)
    return endpoints


def load_users(users_path: PathLike = "users.toml") -> List[Recipient]:
    """
    Load alert recipients.

    Args:
        users_path: Path to users file

    Returns:
        List[Recipient]: Recipients in file order, disabled ones included

    Raises:
        ConfigError: If the file is invalid
    """
    data = read_document(users_path)
    entries = data.get("users", [])
    if not isinstance(entries, list):
        raise ConfigError("Field 'users' must be a list")

    recipients = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigError(f"User #{index} must be a table")
        context = f"user #{index}"
        email = _get(entry, "email", str, None, context)
        if not email:
            raise ConfigError(f"Missing required field 'email' for {context}")
        recipients.append(
            Recipient(
                name=_get(entry, "name", str, email, context),
                email=email,
                enabled=_get(entry, "enabled", bool, True, context),
            )
        )

    logger.info("Loaded %d users from %s", len(recipients), users_path)
    return recipients


def _validate_server(index: int, entry: Any) -> Endpoint:
    if not isinstance(entry, dict):
        raise ConfigError(f"Server #{index} must be a table")

    if "id" not in entry:
        raise ConfigError(f"Missing required field 'id' for server #{index}")
    server_id = _validate_id(entry["id"], f"server #{index}")
    context = f"server {server_id!r}"

    url = _get(entry, "url", str, None, context)
    if not url:
        raise ConfigError(f"Missing required field 'url' for {context}")

    return Endpoint(
        id=server_id,
        label=_get(entry, "label", str, str(server_id), context),
        url=url,
        scheme=_get(entry, "protocol", str, "https://", context),
    )


def _validate_id(value: Any, context: str) -> EndpointId:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ConfigError(f"Field 'id' must be an int or string for {context}")
    return value


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"Section '{name}' must be a table")
    return section


def _get(data: Dict[str, Any], key: str, expected, default, context: str):
    if key not in data:
        return default
    value = data[key]
    # Reject bools where numbers are expected
    if isinstance(value, bool) and expected is not bool:
        raise ConfigError(f"Field '{key}' has the wrong type for {context}")
    if not isinstance(value, expected):
        raise ConfigError(f"Field '{key}' has the wrong type for {context}")
    return value
