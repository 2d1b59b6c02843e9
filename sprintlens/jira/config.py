"""
Configuration loading for the Jira retrieval engine.

Credentials and HTTP settings are read once, from a YAML file shaped like::

    jira:
      base_url: https://your-domain.atlassian.net
      username: you@example.com
      api_token: your_api_token
    http:
      timeout: 25
      max_retries: 5

and turned into immutable values that are handed to the engine constructor.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CREDENTIALS_ENV_VAR = "JIRA_CREDENTIALS_JSON"

DEFAULT_TIMEOUT = 25.0
DEFAULT_MAX_RETRIES = 5


@dataclass(frozen=True)
class JiraCredentials:
    base_url: str
    email: str
    api_token: str

    def __post_init__(self):
        # frozen dataclass, so normalise through object.__setattr__
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    def __repr__(self) -> str:
        return f"JiraCredentials(base_url={self.base_url!r}, email={self.email!r}, api_token='***')"


@dataclass(frozen=True)
class HttpSettings:
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        with open(config_path, "r") as file:
            config = yaml.safe_load(file)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file {config_path} not found")
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML configuration: {e}")

    if not isinstance(config, dict):
        raise ConfigError(f"Configuration file {config_path} is empty or not a mapping")
    logger.info(f"Configuration loaded from {config_path}")
    return config


def validate_config(config: Dict[str, Any]) -> None:
    """Validate required configuration parameters."""
    jira_config = config.get("jira")
    if not isinstance(jira_config, dict):
        raise ConfigError("Missing required configuration section: jira")

    missing = [k for k in ("base_url", "username", "api_token") if not jira_config.get(k)]
    if missing:
        raise ConfigError(f"Missing required jira configuration keys: {', '.join(missing)}")

    http_config = config.get("http") or {}
    if not isinstance(http_config, dict):
        raise ConfigError("Configuration section 'http' must be a mapping")
    try:
        max_retries = int(http_config.get("max_retries", DEFAULT_MAX_RETRIES))
        timeout = float(http_config.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid http configuration: {e}")
    if max_retries < 1:
        raise ConfigError("http.max_retries must be at least 1")
    if timeout <= 0:
        raise ConfigError("http.timeout must be positive")


def credentials_from_config(config: Dict[str, Any]) -> JiraCredentials:
    validate_config(config)
    jira_config = config["jira"]
    return JiraCredentials(
        base_url=jira_config["base_url"],
        email=jira_config["username"],
        api_token=jira_config["api_token"],
    )


def settings_from_config(config: Dict[str, Any]) -> HttpSettings:
    http_config = config.get("http") or {}
    return HttpSettings(
        timeout=float(http_config.get("timeout", DEFAULT_TIMEOUT)),
        max_retries=int(http_config.get("max_retries", DEFAULT_MAX_RETRIES)),
    )


def credentials_from_env(environ: Optional[Dict[str, str]] = None) -> JiraCredentials:
    """
    Build credentials from the JIRA_CREDENTIALS_JSON environment variable.

    The variable holds a JSON object with ``baseUrl``, ``email`` and
    ``apiToken``.
    """
    environ = os.environ if environ is None else environ
    raw = environ.get(CREDENTIALS_ENV_VAR)
    if not raw:
        raise ConfigError(f"{CREDENTIALS_ENV_VAR} environment variable not set")

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigError(f"{CREDENTIALS_ENV_VAR} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"{CREDENTIALS_ENV_VAR} must be a JSON object")
    missing = [k for k in ("baseUrl", "email", "apiToken") if not data.get(k)]
    if missing:
        raise ConfigError(f"{CREDENTIALS_ENV_VAR} is missing: {', '.join(missing)}")

    return JiraCredentials(base_url=data["baseUrl"], email=data["email"], api_token=data["apiToken"])
