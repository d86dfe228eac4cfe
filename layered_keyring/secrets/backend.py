"""Keyring backends — where secrets are actually looked up.

Backends implement a single read operation::

    class SecretBackend:
        def get_secret(self, identifier: Keyring, service: str, username: str) -> str: ...

and report failures with the :class:`~layered_keyring.errors.KeyringError`
taxonomy.  :class:`OSKeyringBackend` uses the ``keyring`` package, which
maps to macOS Keychain, Windows Credential Manager or the Secret Service
API depending on the platform.
"""

from __future__ import annotations

import logging
import sys
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

import keyring
from keyring import errors as keyring_errors
from keyring.backend import KeyringBackend

from layered_keyring.constants import (
    FALLBACK_SYSTEM_TARGET,
    SECRET_SERVICE_ALIAS_PREFIX,
    SYSTEM_KEYRING_TARGETS,
)
from layered_keyring.errors import (
    BackendError,
    KeyringConfigError,
    KeyringError,
    NotFoundError,
    PermissionDeniedError,
    ServiceUnavailableError,
)
from layered_keyring.secrets.schema import Keyring, KeyringKind

logger = logging.getLogger(__name__)


class SecretBackend(ABC):
    """Abstract base class for keyring lookups."""

    @abstractmethod
    def get_secret(self, identifier: Keyring, service: str, username: str) -> str:
        """Return the secret stored for *service*/*username* in *identifier*.

        Raises :class:`NotFoundError` when there is no such entry and another
        :class:`KeyringError` subclass for any other failure.
        """


# ── One-time backend selection ──────────────────────────────────────────

_init_lock = threading.Lock()
_backend: Optional[KeyringBackend] = None


def init_backend() -> KeyringBackend:
    """Select the process-wide keyring backend, once.

    Safe to call from several threads; only the first call asks ``keyring``
    to pick a backend, later calls return the same instance.
    """
    global _backend
    if _backend is not None:
        return _backend
    with _init_lock:
        if _backend is None:
            selected = keyring.get_keyring()
            logger.debug("Selected keyring backend: %s", type(selected).__name__)
            _backend = selected
    return _backend


def reset_backend() -> None:
    """Forget the selected backend so the next lookup selects it again."""
    global _backend
    with _init_lock:
        _backend = None


def default_system_target(platform: Optional[str] = None) -> str:
    """Return the store name used for the ``system`` keyring on *platform*."""
    platform = platform or sys.platform
    for prefix, target in SYSTEM_KEYRING_TARGETS.items():
        if platform.startswith(prefix):
            return target
    return FALLBACK_SYSTEM_TARGET


def _supports_targets(backend: Any) -> bool:
    return hasattr(type(backend), "keychain") or hasattr(backend, "get_preferred_collection")


def _with_target(backend: Any, target: str) -> Any:
    """Return a copy of *backend* addressing the store named *target*."""
    if hasattr(type(backend), "keychain"):
        return backend.with_properties(keychain=target)
    if target.startswith("/"):
        collection = target
    else:
        collection = f"{SECRET_SERVICE_ALIAS_PREFIX}{target}"
    return backend.with_properties(preferred_collection=collection)


class OSKeyringBackend(SecretBackend):
    """Looks secrets up in the operating system's keyrings.

    Parameters
    ----------
    backend:
        Explicit ``keyring`` backend to use.  When omitted, the process-wide
        backend chosen by :func:`init_backend` is used.
    """

    def __init__(self, backend: Optional[KeyringBackend] = None) -> None:
        self._backend = backend

    def _base_backend(self) -> KeyringBackend:
        if self._backend is not None:
            return self._backend
        return init_backend()

    def _resolve(self, identifier: Keyring) -> Any:
        base = self._base_backend()
        if identifier.kind is KeyringKind.USER:
            return base

        if identifier.kind is KeyringKind.SYSTEM:
            target = default_system_target()
        else:
            target = identifier.name or ""
            if not target:
                raise KeyringConfigError("named keyring requires a non-empty name")

        # A chainer delegates to several backends; target the first capable one.
        candidates = list(getattr(base, "backends", None) or [base])
        for candidate in candidates:
            if _supports_targets(candidate):
                return _with_target(candidate, target)

        if identifier.kind is KeyringKind.SYSTEM:
            # Backend exposes a single store, which is the system store.
            return base
        raise KeyringConfigError(
            f"backend {type(base).__name__} does not support named keyring '{target}'"
        )

    def get_secret(self, identifier: Keyring, service: str, username: str) -> str:
        try:
            backend = self._resolve(identifier)
            password = backend.get_password(service, username)
        except KeyringError:
            raise
        except keyring_errors.KeyringLocked as exc:
            raise PermissionDeniedError() from exc
        except keyring_errors.NoKeyringError as exc:
            raise ServiceUnavailableError(str(exc)) from exc
        except keyring_errors.InitError as exc:
            raise KeyringConfigError(str(exc)) from exc
        except Exception as exc:
            raise BackendError(str(exc) or type(exc).__name__) from exc

        if password is None:
            raise NotFoundError(f"{service}/{username} in keyring '{identifier}'")
        return password

