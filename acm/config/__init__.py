"""Configuration Management Package

The configuration lives in a single TOML file, by default ~/.acm/config.toml:

    base_url = "https://api.together.xyz/v1"
    api_key = "..."
    custom_message = "||/type||: ||/description||"

    [params]
    model = "mistralai/Mixtral-8x7B-Instruct-v0.1"
    max_tokens = 128

    [[params.messages]]
    role = "system"
    content = "..."
"""

import logging
import os
import sys
import tomllib
from dataclasses import dataclass, field, asdict, replace
from pathlib import Path
from typing import Any, Optional

import tomli_w

from acm import COMMIT_TYPES
from acm.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.together.xyz/v1"
DEFAULT_MODEL = "mistralai/Mixtral-8x7B-Instruct-v0.1"
DEFAULT_CUSTOM_MESSAGE = "||/type||: ||/description||"
RAW_CUSTOM_MESSAGE = "||/description||"

VALID_ROLES = {"system", "user", "assistant"}

_TYPE_LIST = ", ".join(COMMIT_TYPES)

JSON_SYSTEM_PROMPT = f"""\
You will be provided with an output from the `git diff --staged` command. \
Your task is to construct a clean and comprehensive commit message for the code changes \
in JSON format with the following keys:
- type: A label from the following list [{_TYPE_LIST}] that represents the code changes
- description: A succinct description of the code changes in a single sentence, without a period at the end"""

RAW_SYSTEM_PROMPT = f"""\
You are required to write a meaningful commit message for the given code changes. \
The commit message must have the format: `type(scope): description`. \
The `type` must be one of the following: {_TYPE_LIST}. \
The `scope` indicates the area of the codebase that the changes affect. \
The `description` must be concise and written in a single sentence without a period at the end. \
Reply with the commit message only."""

USER_PROMPT = "The output of the git diff command:\n```\n||/diff||\n```"

COMMIT_SCHEMA = {
    "type": "object",
    "required": ["type", "description"],
    "properties": {
        "type": {"type": "string"},
        "description": {"type": "string"},
    },
}


def default_messages(json_mode: bool = True) -> list[dict]:
    system = JSON_SYSTEM_PROMPT if json_mode else RAW_SYSTEM_PROMPT
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": USER_PROMPT},
    ]


def default_response_format() -> dict:
    return {"type": "json_object", "schema": COMMIT_SCHEMA}


@dataclass(frozen=True)
class Params:
    """Request parameters sent with every chat completion."""
    model: str = DEFAULT_MODEL
    max_tokens: int = 128
    temperature: float = 0.0
    top_p: float = 0.1
    n: int = 1
    messages: list[dict] = field(default_factory=default_messages)
    response_format: Optional[dict] = field(default_factory=default_response_format)

    @property
    def schema(self) -> Optional[dict]:
        """JSON schema the model's reply must satisfy, if structured output is on."""
        if not self.response_format:
            return None
        return self.response_format.get("schema")

    def validate(self) -> tuple['Params', list[str]]:
        """Return a copy with invalid sampling values reset, plus warnings."""
        warnings = []
        defaults = Params()
        fixed = {}

        if not isinstance(self.max_tokens, int) or self.max_tokens <= 0:
            warnings.append(f"Invalid max_tokens '{self.max_tokens}', using {defaults.max_tokens}")
            fixed["max_tokens"] = defaults.max_tokens

        if not isinstance(self.temperature, (int, float)) or not 0 <= self.temperature <= 2:
            warnings.append(f"Invalid temperature '{self.temperature}', using {defaults.temperature}")
            fixed["temperature"] = defaults.temperature

        if not isinstance(self.top_p, (int, float)) or not 0 <= self.top_p <= 1:
            warnings.append(f"Invalid top_p '{self.top_p}', using {defaults.top_p}")
            fixed["top_p"] = defaults.top_p

        if not isinstance(self.n, int) or self.n < 1:
            warnings.append(f"Invalid n '{self.n}', using {defaults.n}")
            fixed["n"] = defaults.n

        return replace(self, **fixed), warnings

    @classmethod
    def from_dict(cls, data: dict) -> 'Params':
        if not isinstance(data, dict):
            raise ConfigError("'params' must be a table")

        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}

        messages = filtered.get("messages")
        if messages is not None:
            _check_messages(messages)

        response_format = filtered.get("response_format")
        if response_format is not None:
            if not isinstance(response_format, dict):
                raise ConfigError("'params.response_format' must be a table")
            schema = response_format.get("schema")
            if schema is not None:
                _check_schema(schema)
        elif "messages" in filtered:
            # Custom messages without a response format ask for plain text
            filtered["response_format"] = None

        return cls(**filtered)


def _check_schema(schema: Any) -> None:
    if not isinstance(schema, dict):
        raise ConfigError("'params.response_format.schema' must be a table")
    required = schema.get("required", [])
    if not isinstance(required, list) or not all(isinstance(name, str) for name in required):
        raise ConfigError("'params.response_format.schema.required' must be an array of strings")
    properties = schema.get("properties", {})
    if not isinstance(properties, dict):
        raise ConfigError("'params.response_format.schema.properties' must be a table")
    for name, prop in properties.items():
        if not isinstance(prop, dict):
            raise ConfigError(f"'params.response_format.schema.properties.{name}' must be a table")


def _check_messages(messages: Any) -> None:
    if not isinstance(messages, list) or not messages:
        raise ConfigError("'params.messages' must be a non-empty array of tables")
    for i, message in enumerate(messages):
        if not isinstance(message, dict):
            raise ConfigError(f"'params.messages[{i}]' must be a table")
        if message.get("role") not in VALID_ROLES:
            raise ConfigError(
                f"'params.messages[{i}].role' must be one of {', '.join(sorted(VALID_ROLES))}"
            )
        if not isinstance(message.get("content"), str):
            raise ConfigError(f"'params.messages[{i}].content' must be a string")


@dataclass(frozen=True)
class Config:
    """User configuration. Read-only once loaded; use with_overrides() for per-run changes."""
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    custom_message: str = DEFAULT_CUSTOM_MESSAGE
    timeout: int = 30
    params: Params = field(default_factory=Params)

    @property
    def structured(self) -> bool:
        return self.params.schema is not None

    def to_dict(self) -> dict:
        return _drop_none(asdict(self))

    def with_overrides(self, base_url: str | None = None, api_key: str | None = None,
                       model: str | None = None) -> 'Config':
        config = self
        if base_url:
            config = replace(config, base_url=base_url)
        if api_key:
            config = replace(config, api_key=api_key)
        if model:
            config = replace(config, params=replace(config.params, model=model))
        return config

    def validate(self) -> tuple['Config', list[str]]:
        """Return a copy with invalid values replaced by defaults, plus warnings."""
        warnings = []
        defaults = Config()
        fixed = {}

        if not isinstance(self.base_url, str) or not self.base_url.strip():
            warnings.append(f"Invalid base_url '{self.base_url}', using '{defaults.base_url}'")
            fixed["base_url"] = defaults.base_url

        if not isinstance(self.custom_message, str) or not self.custom_message.strip():
            warnings.append(f"Invalid custom_message '{self.custom_message}', using '{RAW_CUSTOM_MESSAGE}'")
            fixed["custom_message"] = RAW_CUSTOM_MESSAGE

        if not isinstance(self.timeout, int) or self.timeout <= 0:
            warnings.append(f"Invalid timeout '{self.timeout}', using {defaults.timeout}")
            fixed["timeout"] = defaults.timeout

        params, param_warnings = self.params.validate()
        warnings.extend(param_warnings)
        fixed["params"] = params

        return replace(self, **fixed), warnings

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        filtered["params"] = Params.from_dict(filtered.get("params", {}))
        if not isinstance(filtered.get("api_key", ""), str):
            raise ConfigError("'api_key' must be a string")

        config, warnings = cls(**filtered).validate()
        for warning in warnings:
            print(f"Config warning: {warning}", file=sys.stderr)
        return config


def _drop_none(value):
    """TOML has no null, so None entries are left out of the file."""
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    return value


class ConfigManager:
    """Manages loading and saving the configuration file.

    Lookup order: explicit path, $ACM_CONFIG, ~/.acm/config.toml.
    """

    CONFIG_DIR = ".acm"
    CONFIG_FILENAME = "config.toml"
    ENV_VAR = "ACM_CONFIG"

    def __init__(self, path: Path | str | None = None):
        self._explicit_path = Path(path).expanduser() if path else None
        self._config: Optional[Config] = None

    @property
    def path(self) -> Path:
        if self._explicit_path:
            return self._explicit_path
        env_path = os.environ.get(self.ENV_VAR)
        if env_path:
            return Path(env_path).expanduser()
        return Path.home() / self.CONFIG_DIR / self.CONFIG_FILENAME

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Config:
        if self._config is not None:
            return self._config

        path = self.path
        if not path.exists():
            raise ConfigError(f"No configuration found at {path}. Run: acm --setup")

        try:
            with open(path, 'rb') as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Could not parse {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Could not read {path}: {e}")

        try:
            self._config = Config.from_dict(data)
        except TypeError as e:
            raise ConfigError(f"Invalid configuration in {path}: {e}")
        logger.debug("Loaded configuration from %s", path)
        return self._config

    def save(self, config: Config) -> Path:
        path = self.path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(tomli_w.dumps(config.to_dict()), encoding='utf-8')
            # The file holds an API key
            tmp.chmod(0o600)
            tmp.replace(path)
        except OSError as e:
            raise ConfigError(f"Could not write {path}: {e}")
        self._config = config
        logger.debug("Saved configuration to %s", path)
        return path


_manager = ConfigManager()


def set_config_path(path: Path | str | None) -> None:
    global _manager
    _manager = ConfigManager(path)


def config_exists() -> bool:
    return _manager.exists()


def load_config() -> Config:
    return _manager.load()


def save_config(config: Config) -> Path:
    return _manager.save(config)


def get_config_path() -> Path:
    return _manager.path


__all__ = [
    "Config",
    "Params",
    "ConfigManager",
    "load_config",
    "save_config",
    "config_exists",
    "set_config_path",
    "get_config_path",
    "default_messages",
    "default_response_format",
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "DEFAULT_CUSTOM_MESSAGE",
    "RAW_CUSTOM_MESSAGE",
    "COMMIT_SCHEMA",
    "USER_PROMPT",
]
