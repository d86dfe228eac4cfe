"""Keyring secret resolution.

Fetches secrets from the system keyrings (macOS Keychain, Windows
Credential Manager, Linux Secret Service) and contributes them to a
layered configuration.
"""

from layered_keyring.secrets.backend import OSKeyringBackend, SecretBackend, init_backend
from layered_keyring.secrets.provider import KeyringProvider
from layered_keyring.secrets.resolver import SecretResolver
from layered_keyring.secrets.schema import Keyring, KeyringConfig, KeyringKind

__all__ = [
    "Keyring",
    "KeyringConfig",
    "KeyringKind",
    "KeyringProvider",
    "OSKeyringBackend",
    "SecretBackend",
    "SecretResolver",
    "init_backend",
]
