"""Secret resolver — searches keyrings in priority order.

Usage::

    from layered_keyring.secrets.resolver import SecretResolver

    resolver = SecretResolver(OSKeyringBackend())
    config = KeyringConfig(service="myapp", keyrings=["user", "team-secrets"])
    secret = resolver.search(config, "api_key")   # str, or None if absent

The first keyring holding the entry wins; later keyrings are not queried.
A keyring without the entry is skipped.  Any other keyring failure aborts
the search unless ``config.optional`` is set, in which case it is treated
like a missing entry.
"""

from __future__ import annotations

import logging
from typing import Optional

from layered_keyring.display.logging_config import secret_redaction_filter
from layered_keyring.errors import KeyringError, NotFoundError
from layered_keyring.secrets.backend import OSKeyringBackend, SecretBackend
from layered_keyring.secrets.schema import KeyringConfig

logger = logging.getLogger(__name__)


class SecretResolver:
    """Ordered keyring search over a :class:`SecretBackend`."""

    def __init__(self, backend: Optional[SecretBackend] = None) -> None:
        self._backend: SecretBackend = backend if backend is not None else OSKeyringBackend()

    @property
    def backend(self) -> SecretBackend:
        return self._backend

    def search(self, config: KeyringConfig, credential_name: str) -> Optional[str]:
        """Return the first secret found for *credential_name*, or ``None``.

        Raises the backend's :class:`KeyringError` when a keyring fails for a
        reason other than a missing entry and ``config.optional`` is false.
        """
        for identifier in config.keyrings:
            try:
                secret = self._backend.get_secret(identifier, config.service, credential_name)
            except NotFoundError:
                logger.debug(
                    "Secret '%s' not in keyring '%s' (service '%s').",
                    credential_name,
                    identifier,
                    config.service,
                )
                continue
            except KeyringError as exc:
                if not config.optional:
                    raise
                logger.debug(
                    "Keyring '%s' failed for optional secret '%s': %s",
                    identifier,
                    credential_name,
                    exc,
                )
                continue

            secret_redaction_filter.register(secret)
            logger.debug("Resolved secret '%s' from keyring '%s'.", credential_name, identifier)
            return secret

        logger.debug(
            "Secret '%s' not found in %d keyring(s).", credential_name, len(config.keyrings)
        )
        return None
