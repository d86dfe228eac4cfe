"""
layered-keyring - keyring secrets for layered configuration.

Provides a configuration provider that fetches secrets from the system
keyrings (macOS Keychain, Windows Credential Manager, Linux Secret Service)
and contributes them to a profile-aware layered configuration.

Quick start::

    from layered_keyring import KeyringProvider, Layered, YamlFile

    # keyring.yaml: {service: myapp, keyrings: [user, team-secrets]}
    keyring_cfg = Layered(YamlFile("keyring.yaml"))

    settings = (
        Layered(YamlFile("app.yaml"))
        .merge(KeyringProvider.configured_by(keyring_cfg, "api_key"))
        .extract(AppSettings)
    )
"""

from layered_keyring.config import (
    Env,
    Layered,
    Metadata,
    Profile,
    Provider,
    Serialized,
    YamlFile,
)
from layered_keyring.constants import PACKAGE_NAME, PACKAGE_VERSION
from layered_keyring.display.logging_config import secret_redaction_filter, setup_logging
from layered_keyring.errors import (
    BackendError,
    ConfigurationError,
    KeyringConfigError,
    KeyringError,
    LayeredKeyringError,
    NotFoundError,
    PermissionDeniedError,
    SecretNotFoundError,
    ServiceUnavailableError,
)
from layered_keyring.secrets import (
    Keyring,
    KeyringConfig,
    KeyringKind,
    KeyringProvider,
    OSKeyringBackend,
    SecretBackend,
    SecretResolver,
)

__version__ = PACKAGE_VERSION
__app_name__ = PACKAGE_NAME

__all__ = [
    "BackendError",
    "ConfigurationError",
    "Env",
    "Keyring",
    "KeyringConfig",
    "KeyringConfigError",
    "KeyringError",
    "KeyringKind",
    "KeyringProvider",
    "Layered",
    "LayeredKeyringError",
    "Metadata",
    "NotFoundError",
    "OSKeyringBackend",
    "PermissionDeniedError",
    "Profile",
    "Provider",
    "SecretBackend",
    "SecretNotFoundError",
    "SecretResolver",
    "ServiceUnavailableError",
    "Serialized",
    "YamlFile",
    "secret_redaction_filter",
    "setup_logging",
    "__version__",
    "__app_name__",
]
