"""
Configuration management and loading.

Handles application settings, the optional YAML config file, and the API
credential from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from ai_codegen.core.errors import MissingCredential

DEFAULT_ENDPOINT = "https://api.openai.com/v1/engines/text-davinci-001/completions"
API_KEY_ENV_VAR = "OPENAI_API_KEY"


@dataclass(frozen=True)
class ApiConfig:
    """Completion endpoint settings."""
    endpoint: str = DEFAULT_ENDPOINT
    max_tokens: int = 1000
    timeout: float = 10.0

    def __post_init__(self):
        """Validate API values."""
        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError("endpoint must be an http(s) URL")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")


@dataclass(frozen=True)
class CacheConfig:
    """Result cache settings."""
    size: int = 100

    def __post_init__(self):
        if self.size <= 0:
            raise ValueError("cache size must be > 0")


@dataclass(frozen=True)
class RateLimitConfig:
    """Outbound rate limit settings."""
    requests: int = 1000
    period_seconds: float = 1.0

    def __post_init__(self):
        """Validate rate limit values are positive."""
        if self.requests <= 0:
            raise ValueError("rate_limit requests must be > 0")
        if self.period_seconds <= 0:
            raise ValueError("rate_limit period_seconds must be > 0")


@dataclass(frozen=True)
class DisplayConfig:
    """Console output settings."""
    animate: bool = True
    delay_ms: int = 50

    def __post_init__(self):
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")


@dataclass(frozen=True)
class Settings:
    """Complete application settings."""
    api: ApiConfig = field(default_factory=ApiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)


# Allowed keys per section and the type each value is coerced to
_SECTIONS: Dict[str, Dict[str, type]] = {
    'api': {'endpoint': str, 'max_tokens': int, 'timeout': float},
    'cache': {'size': int},
    'rate_limit': {'requests': int, 'period_seconds': float},
    'display': {'animate': bool, 'delay_ms': int},
}

_SECTION_TYPES = {
    'api': ApiConfig,
    'cache': CacheConfig,
    'rate_limit': RateLimitConfig,
    'display': DisplayConfig,
}


def load_settings(path: Optional[str] = None) -> Settings:
    """Load and validate settings from an optional YAML file.

    Without a path the built-in defaults are returned. Every section and key
    in the file is optional, but unknown ones are rejected so that typos
    never silently fall back to defaults.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated Settings object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        return Settings()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return Settings()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration file must contain a mapping")

    unknown_keys = set(raw_config.keys()) - set(_SECTIONS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    sections = {}
    for section, section_data in raw_config.items():
        if section_data is None:
            continue
        if not isinstance(section_data, dict):
            raise ValueError(f"'{section}' must be a dictionary")
        values = _parse_section(section, section_data)
        sections[section] = _SECTION_TYPES[section](**values)

    return Settings(**sections)


def _parse_section(section: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate keys and coerce values of one config section.

    Args:
        section: Section name, used for lookup and error messages
        data: Raw section mapping from YAML

    Returns:
        Keyword arguments for the section dataclass

    Raises:
        ValueError: If a key is unknown or a value has the wrong type
    """
    allowed = _SECTIONS[section]
    unknown_keys = set(data.keys()) - set(allowed)
    if unknown_keys:
        raise ValueError(f"Unknown keys in {section}: {unknown_keys}")

    values = {}
    for key, value in data.items():
        expected = allowed[key]
        if expected is bool:
            if not isinstance(value, bool):
                raise ValueError(f"'{key}' in {section} must be true or false")
        elif expected is str:
            if not isinstance(value, str):
                raise ValueError(f"'{key}' in {section} must be a string")
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"'{key}' in {section} must be a number")
        elif expected is int and not float(value).is_integer():
            raise ValueError(f"'{key}' in {section} must be a whole number")
        values[key] = expected(value)
    return values


def load_api_key(env_var: str = API_KEY_ENV_VAR, dotenv_path: Optional[str] = None) -> str:
    """Read the API key once at startup.

    A local .env file is loaded first; values already present in the
    environment take precedence over it.

    Args:
        env_var: Environment variable holding the key
        dotenv_path: Explicit .env file; searched for from the working
            directory upward when omitted

    Returns:
        The API key

    Raises:
        MissingCredential: If the variable is unset or empty
    """
    load_dotenv(dotenv_path=dotenv_path or find_dotenv(usecwd=True))
    api_key = os.getenv(env_var)
    if not api_key or not api_key.strip():
        raise MissingCredential(env_var)
    return api_key.strip()
