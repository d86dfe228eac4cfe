"""Custom exception classes for layered-keyring."""

from typing import Optional


class LayeredKeyringError(Exception):
    """Base class for all custom exceptions in layered-keyring."""

    pass


class ConfigurationError(LayeredKeyringError):
    """Raised when a layered configuration cannot be produced or extracted.

    Every failure surfaced by a provider's ``data()`` is reported as this
    type so callers composing configuration only need to catch one error.
    """

    pass


class SecretNotFoundError(ConfigurationError):
    """Raised when a required secret is absent from every searched keyring."""

    def __init__(self, credential_name: str):
        self.credential_name = credential_name
        super().__init__(f"secret '{credential_name}' not found in any keyring")


# ── Keyring backend taxonomy ────────────────────────────────────────────


class KeyringError(LayeredKeyringError):
    """Base class for failures reported by a keyring backend."""

    prefix = "keyring error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        if detail is None:
            super().__init__(self.prefix)
        else:
            super().__init__(f"{self.prefix}: {detail}")


class NotFoundError(KeyringError):
    """The keyring holds no entry for the requested service and account."""

    prefix = "secret not found"


class KeyringConfigError(KeyringError):
    """The keyring could not be addressed as configured."""

    prefix = "keyring config error"


class ServiceUnavailableError(KeyringError):
    """No usable keyring service is reachable."""

    prefix = "keyring service unavailable"


class PermissionDeniedError(KeyringError):
    """The keyring refused access (for example, it is locked)."""

    prefix = "permission denied"

    def __init__(self) -> None:
        super().__init__(None)


class BackendError(KeyringError):
    """Any other failure raised by the keyring backend."""

    prefix = "backend error"
