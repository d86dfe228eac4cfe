"""Layered, profile-aware configuration."""

from layered_keyring.config.layered import Layered
from layered_keyring.config.profile import Profile
from layered_keyring.config.providers import (
    Env,
    Metadata,
    Provider,
    Serialized,
    YamlFile,
    expand_env_vars,
)

__all__ = [
    "Env",
    "Layered",
    "Metadata",
    "Profile",
    "Provider",
    "Serialized",
    "YamlFile",
    "expand_env_vars",
]
