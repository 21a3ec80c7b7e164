"""Configuration management for nrepleval.

Values are layered, later sources winning:
    1. ~/.config/nrepleval/config.cfg  ([DEFAULT] section)
    2. .env in the working directory
    3. NREPL_* environment variables
Command line options are applied on top by the CLI.
"""

import configparser
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

# Default location for user configuration.
CONFIG_PATH = Path.home() / ".config" / "nrepleval" / "config.cfg"
ENV_FILE = Path(".env")

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 7888
DEFAULT_TIMEOUT = 120.0

# Environment variable -> raw config key
ENV_KEYS = {
    "NREPL_HOST": "host",
    "NREPL_PORT": "port",
    "NREPL_TIMEOUT": "timeout",
    "NREPL_MAX_MESSAGES": "max_messages",
    "NREPL_MAX_OUTPUT_BYTES": "max_output_bytes",
}


@dataclass
class ClientConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    max_messages: Optional[int] = None
    max_output_bytes: Optional[int] = None


def _from_env_mapping(values: Mapping[str, Optional[str]]) -> Dict[str, str]:
    data: Dict[str, str] = {}
    for env_key, key in ENV_KEYS.items():
        value = values.get(env_key)
        if value is not None and str(value).strip() != "":
            data[key] = str(value).strip()
    return data


def load_raw_config(
    path: Path = CONFIG_PATH,
    env_file: Optional[Path] = ENV_FILE,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Load configuration values from every source.
    Keys are returned lowercase.

    Args:
        path: Config file path
        env_file: Optional .env file (skipped if None or missing)
        environ: Environment mapping (defaults to os.environ)
    """
    data: Dict[str, str] = {}

    if path.exists():
        cfg = configparser.ConfigParser()
        cfg.read(path)
        data.update({k.lower(): v for k, v in cfg["DEFAULT"].items()})

    if env_file is not None and env_file.exists():
        data.update(_from_env_mapping(dotenv_values(env_file)))

    data.update(_from_env_mapping(os.environ if environ is None else environ))
    return data


def _get_optional_int(raw: Mapping[str, str], key: str) -> Optional[int]:
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        return None
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValueError(f"Invalid {key}: {value!r} is not an integer") from None
    if number <= 0:
        raise ValueError(f"Invalid {key}: must be positive, got {number}")
    return number


def get_client_config(raw: Optional[Mapping[str, str]] = None) -> ClientConfig:
    """
    Build a ClientConfig from raw configuration values.
    Raises ValueError if a value is invalid.
    """
    raw = load_raw_config() if raw is None else raw

    host = str(raw.get("host", "") or DEFAULT_HOST).strip()

    port_raw = raw.get("port", DEFAULT_PORT)
    try:
        port = int(str(port_raw).strip())
    except ValueError:
        raise ValueError(f"Invalid port: {port_raw!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"Invalid port: {port} is outside 1-65535")

    timeout_raw = raw.get("timeout", DEFAULT_TIMEOUT)
    try:
        timeout = float(str(timeout_raw).strip())
    except ValueError:
        raise ValueError(f"Invalid timeout: {timeout_raw!r}") from None
    if timeout <= 0:
        raise ValueError(f"Invalid timeout: must be positive, got {timeout}")

    return ClientConfig(
        host=host,
        port=port,
        timeout=timeout,
        max_messages=_get_optional_int(raw, "max_messages"),
        max_output_bytes=_get_optional_int(raw, "max_output_bytes"),
    )
