"""Shared constants for layered-keyring."""

PACKAGE_NAME = "layered-keyring"
PACKAGE_VERSION = "0.1.0"

# Name reported by KeyringProvider.metadata()
PROVIDER_NAME = "keyring"

# Profile names
DEFAULT_PROFILE = "default"
GLOBAL_PROFILE = "global"

# Reserved keyring names
USER_KEYRING = "user"
SYSTEM_KEYRING = "system"

# Store used for the ``system`` keyring, keyed by ``sys.platform`` prefix.
SYSTEM_KEYRING_TARGETS = {
    "win32": "Windows Credential Manager",
    "darwin": "login.keychain",
    "linux": "default",
}
FALLBACK_SYSTEM_TARGET = "default"

# D-Bus path prefix for Secret Service collection aliases
SECRET_SERVICE_ALIAS_PREFIX = "/org/freedesktop/secrets/aliases/"

# Logging defaults
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)25s:%(lineno)-4d - %(levelname)-7s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
