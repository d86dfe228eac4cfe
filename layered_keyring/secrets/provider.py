"""Configuration provider that fetches a secret from the system keyrings.

The provider uses **late binding**: it holds a :class:`Layered` describing
*how* to look the secret up (service, keyrings, optional) but only extracts
that :class:`KeyringConfig` and searches the keyrings when the surrounding
configuration asks for data.  The lookup parameters can therefore come from
any source the application composes::

    keyring_cfg = Layered(YamlFile("keyring.yaml")).merge(Env("MYAPP_KEYRING_"))

    settings = (
        Layered(YamlFile("app.yaml"))
        .merge(KeyringProvider.configured_by(keyring_cfg, "api_key"))
        .extract(AppSettings)
    )
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from layered_keyring.config.layered import Layered
from layered_keyring.config.profile import Profile
from layered_keyring.config.providers import Metadata, Provider, Serialized
from layered_keyring.constants import PROVIDER_NAME
from layered_keyring.errors import ConfigurationError, KeyringError, SecretNotFoundError
from layered_keyring.secrets.backend import SecretBackend
from layered_keyring.secrets.resolver import SecretResolver
from layered_keyring.secrets.schema import Keyring, KeyringConfig

logger = logging.getLogger(__name__)


def _inline_config(service: str, keyring: Keyring) -> Layered:
    config = KeyringConfig(service=service, keyrings=[keyring], optional=False)
    return Layered(Serialized.defaults(config))


@dataclass(frozen=True)
class KeyringProvider(Provider):
    """Provider contributing one keyring secret to a layered configuration.

    Parameters
    ----------
    source:
        Layered configuration the :class:`KeyringConfig` is extracted from.
        It is only read, and may be shared with other providers.
    credential_name:
        Account name looked up in the keyrings; also the default output key.
    config_key:
        Output key override, see :meth:`as_key`.
    profile:
        Target profile, see :meth:`with_profile`.  Defaults to
        :attr:`Profile.DEFAULT`.
    backend:
        Keyring backend; defaults to the OS keyrings.
    """

    source: Layered
    credential_name: str
    config_key: Optional[str] = None
    profile: Optional[Profile] = None
    backend: Optional[SecretBackend] = field(default=None, compare=False)

    # ── Construction ────────────────────────────────────────────────

    @classmethod
    def configured_by(
        cls,
        source: Union[Layered, Provider],
        credential_name: str,
        *,
        backend: Optional[SecretBackend] = None,
    ) -> "KeyringProvider":
        """Build a provider whose keyring config is extracted from *source*."""
        return cls(
            source=Layered.from_provider(source),
            credential_name=credential_name,
            backend=backend,
        )

    @classmethod
    def new(
        cls,
        service: str,
        credential_name: str,
        *,
        backend: Optional[SecretBackend] = None,
    ) -> "KeyringProvider":
        """Build a provider searching only the user keyring for *service*."""
        return cls.configured_by(
            _inline_config(service, Keyring.user()), credential_name, backend=backend
        )

    @classmethod
    def system(
        cls,
        service: str,
        credential_name: str,
        *,
        backend: Optional[SecretBackend] = None,
    ) -> "KeyringProvider":
        """Build a provider searching only the system keyring for *service*."""
        return cls.configured_by(
            _inline_config(service, Keyring.system()), credential_name, backend=backend
        )

    def as_key(self, key: str) -> "KeyringProvider":
        """Store the secret under *key* instead of the credential name.

        The keyring lookup still uses :attr:`credential_name`.  Dotted keys
        (``"database.password"``) nest when merged into a :class:`Layered`.
        """
        return dataclasses.replace(self, config_key=key)

    def with_profile(self, profile: Union[Profile, str]) -> "KeyringProvider":
        """Contribute the secret to *profile* instead of the default profile."""
        return dataclasses.replace(self, profile=Profile(profile))

    @property
    def output_key(self) -> str:
        return self.config_key or self.credential_name

    @property
    def target_profile(self) -> Profile:
        return self.profile if self.profile is not None else Profile.default()

    # ── Provider interface ──────────────────────────────────────────

    def metadata(self) -> Metadata:
        return Metadata(PROVIDER_NAME, self.credential_name)

    def data(self) -> Dict[Profile, Dict[str, Any]]:
        try:
            config = self.source.extract(KeyringConfig)
        except ConfigurationError as exc:
            raise ConfigurationError(f"keyring config: {exc}") from exc

        try:
            secret = SecretResolver(self.backend).search(config, self.credential_name)
        except KeyringError as exc:
            raise ConfigurationError(str(exc)) from exc

        values: Dict[str, Any] = {}
        if secret is not None:
            values[self.output_key] = secret
        elif config.optional:
            logger.debug("Optional secret '%s' not found; omitting.", self.credential_name)
        else:
            raise SecretNotFoundError(self.credential_name)

        return {self.target_profile: values}

    def __repr__(self) -> str:
        return (
            f"KeyringProvider(credential_name={self.credential_name!r}, "
            f"config_key={self.config_key!r}, profile={self.profile!r})"
        )
