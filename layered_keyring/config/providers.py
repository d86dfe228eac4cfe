"""Configuration providers: the sources a :class:`Layered` is built from.

Providers implement a simple interface::

    class Provider:
        def metadata(self) -> Metadata: ...
        def data(self) -> Dict[Profile, Dict[str, Any]]: ...

Built-in providers:

* ``Serialized`` — an in-memory mapping or Pydantic model
* ``YamlFile`` — a YAML file, with ``${ENV_VAR}`` expansion
* ``Env`` — environment variables (``PREFIX_A__B=1`` → ``{"a": {"b": "1"}}``)
"""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel

from layered_keyring.config.profile import Profile
from layered_keyring.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Recognised config file extensions.
_YAML_EXTS = frozenset({".yaml", ".yml"})

# Regex for ${VAR_NAME} — captures the variable name inside ${}
_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand ``${VAR}`` references in string values.

    - If the env var is not set, the placeholder is left unchanged.
    - Non-string leaves are returned as-is.
    - Dicts and lists are walked recursively.
    """
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(
            lambda m: os.environ.get(m.group(1), m.group(0)),
            value,
        )
    if isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def nest_under(key: str, value: Any) -> Dict[str, Any]:
    """Wrap *value* in nested dicts following the dotted *key*."""
    parts = [part for part in key.split(".") if part]
    if not parts:
        raise ConfigurationError(f"Invalid configuration key: {key!r}")
    nested: Any = value
    for part in reversed(parts):
        nested = {part: nested}
    return nested


@dataclass(frozen=True)
class Metadata:
    """Describes where a provider's data comes from."""

    name: str
    source: Optional[str] = None

    def __str__(self) -> str:
        if self.source:
            return f"{self.name} ({self.source})"
        return self.name


class Provider(ABC):
    """Abstract base class for configuration sources."""

    @abstractmethod
    def metadata(self) -> Metadata:
        """Describe this provider."""

    @abstractmethod
    def data(self) -> Dict[Profile, Dict[str, Any]]:
        """Return this provider's contribution, keyed by profile.

        Raises :class:`ConfigurationError` when the data cannot be produced.
        """


# ── In-memory values ────────────────────────────────────────────────────


class Serialized(Provider):
    """Serves a mapping or Pydantic model as configuration.

    Parameters
    ----------
    value:
        A mapping, or a Pydantic model which is dumped in JSON mode.
    profile:
        The profile the value is contributed to.
    key:
        Optional dotted key; when given, *value* is nested under it.
    """

    def __init__(
        self,
        value: Any,
        *,
        profile: Union[Profile, str] = Profile.DEFAULT,
        key: Optional[str] = None,
    ) -> None:
        self._value = value
        self._profile = Profile(profile)
        self._key = key

    @classmethod
    def defaults(cls, value: Union[Mapping[str, Any], BaseModel]) -> "Serialized":
        return cls(value, profile=Profile.DEFAULT)

    @classmethod
    def globals(cls, value: Union[Mapping[str, Any], BaseModel]) -> "Serialized":
        return cls(value, profile=Profile.GLOBAL)

    def metadata(self) -> Metadata:
        return Metadata("serialized", type(self._value).__name__)

    def data(self) -> Dict[Profile, Dict[str, Any]]:
        value = self._value
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        if self._key is not None:
            return {self._profile: nest_under(self._key, value)}
        if not isinstance(value, Mapping):
            raise ConfigurationError(
                f"Serialized value of type {type(value).__name__} needs a key"
            )
        return {self._profile: dict(value)}


# ── YAML files ──────────────────────────────────────────────────────────


class YamlFile(Provider):
    """Reads configuration from a YAML file.

    ``${VAR}`` placeholders in string values are expanded from the process
    environment.  A missing file contributes nothing unless *required*.
    With *nested*, top-level keys are profile names.
    """

    def __init__(
        self,
        path: Union[str, "os.PathLike[str]"],
        *,
        required: bool = False,
        nested: bool = False,
        profile: Union[Profile, str] = Profile.DEFAULT,
    ) -> None:
        self._path = os.fspath(path)
        self._required = required
        self._nested = nested
        self._profile = Profile(profile)

    def metadata(self) -> Metadata:
        return Metadata("YAML file", self._path)

    def _read(self) -> Dict[str, Any]:
        ext = os.path.splitext(self._path)[1].lower()
        if ext not in _YAML_EXTS:
            raise ConfigurationError(
                f"Unsupported config file extension '{ext}'. "
                "Only YAML files (.yaml, .yml) are supported."
            )

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f)
        except Exception as exc:
            raise ConfigurationError(
                f"Error reading configuration file: {self._path}\n  {exc}"
            ) from exc

        if raw_data is None:
            return {}
        if not isinstance(raw_data, dict):
            raise ConfigurationError(
                f"Top-level content of {self._path} must be a YAML mapping (dictionary)."
            )
        return expand_env_vars(raw_data)

    def data(self) -> Dict[Profile, Dict[str, Any]]:
        if not os.path.exists(self._path):
            if self._required:
                raise ConfigurationError(f"Configuration file does not exist: {self._path}")
            logger.debug("Optional configuration file %s not found, skipping.", self._path)
            return {}

        raw_data = self._read()
        if not self._nested:
            return {self._profile: raw_data}

        result: Dict[Profile, Dict[str, Any]] = {}
        for name, section in raw_data.items():
            if not isinstance(section, dict):
                raise ConfigurationError(
                    f"Profile '{name}' in {self._path} must be a YAML mapping."
                )
            result[Profile(name)] = section
        return result


# ── Environment variables ───────────────────────────────────────────────


def _parse_env_value(raw: str) -> Any:
    """Parse flow collections, keeping every scalar a string.

    Scalars are left for the model to coerce, so ``2024`` or ``on`` stay
    strings where a string is expected.
    """
    if not raw.lstrip().startswith(("[", "{")):
        return raw
    try:
        return yaml.load(raw, Loader=yaml.BaseLoader)
    except yaml.YAMLError:
        return raw


class Env(Provider):
    """Reads configuration from environment variables.

    Variables whose name starts with *prefix* (case-insensitive) are
    included with the prefix stripped and the remainder lower-cased.  The
    *split* separator nests keys, so with ``prefix="MYAPP_"``,
    ``MYAPP_DB__PORT=5432`` becomes ``{"db": {"port": "5432"}}``.  Values in
    YAML flow syntax (``[a, b]``, ``{k: v}``) become lists and mappings; all
    scalars stay strings and are coerced when a model is extracted.
    """

    def __init__(
        self,
        prefix: str = "",
        *,
        split: Optional[str] = "__",
        profile: Union[Profile, str] = Profile.DEFAULT,
    ) -> None:
        self._prefix = prefix
        self._split = split
        self._profile = Profile(profile)

    def metadata(self) -> Metadata:
        source = f"{self._prefix}*" if self._prefix else None
        return Metadata("environment variable(s)", source)

    def _keys(self, name: str) -> Optional[list]:
        if not name.upper().startswith(self._prefix.upper()):
            return None
        key = name[len(self._prefix) :].lower()
        if not key:
            return None
        parts = key.split(self._split) if self._split else [key]
        if not all(parts):
            logger.debug("Skipping environment variable with empty key segment: %s", name)
            return None
        return parts

    def data(self) -> Dict[Profile, Dict[str, Any]]:
        values: Dict[str, Any] = {}
        for name in sorted(os.environ):
            parts = self._keys(name)
            if parts is None:
                continue
            target = values
            for part in parts[:-1]:
                child = target.get(part)
                if not isinstance(child, dict):
                    child = {}
                    target[part] = child
                target = child
            target[parts[-1]] = _parse_env_value(os.environ[name])
        return {self._profile: values}
