"""Keyring identifiers and the keyring resolution config.

The config is usually extracted from a :class:`~layered_keyring.config.Layered`
so it can come from any source the application chooses::

    # keyring.yaml
    service: myapp
    keyrings: [user, team-secrets]
    optional: false
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PlainValidator

from layered_keyring.constants import SYSTEM_KEYRING, USER_KEYRING


class KeyringKind(enum.Enum):
    USER = "user"
    SYSTEM = "system"
    NAMED = "named"


@dataclass(frozen=True)
class Keyring:
    """Identifies which keyring to search.

    ``USER`` is the invoking user's default keyring, ``SYSTEM`` the
    system-wide one, and ``NAMED`` any other store, addressed by name.
    """

    kind: KeyringKind
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is KeyringKind.NAMED:
            if self.name is None:
                raise ValueError("a named keyring needs a name")
        elif self.name is not None:
            raise ValueError(f"the {self.kind.value} keyring takes no name, got {self.name!r}")

    @classmethod
    def user(cls) -> "Keyring":
        return cls(KeyringKind.USER)

    @classmethod
    def system(cls) -> "Keyring":
        return cls(KeyringKind.SYSTEM)

    @classmethod
    def named(cls, name: str) -> "Keyring":
        return cls(KeyringKind.NAMED, name)

    @classmethod
    def default(cls) -> "Keyring":
        return cls.user()

    @classmethod
    def from_string(cls, value: str) -> "Keyring":
        """Parse a keyring name.  Never fails.

        ``"user"`` and ``"system"`` are reserved; every other string,
        including the empty string, names a custom keyring.
        """
        if value == USER_KEYRING:
            return cls.user()
        if value == SYSTEM_KEYRING:
            return cls.system()
        return cls.named(value)

    @property
    def is_named(self) -> bool:
        return self.kind is KeyringKind.NAMED

    def __str__(self) -> str:
        if self.kind is KeyringKind.USER:
            return USER_KEYRING
        if self.kind is KeyringKind.SYSTEM:
            return SYSTEM_KEYRING
        return self.name or ""

    def __repr__(self) -> str:
        if self.is_named:
            return f"Keyring.named({self.name!r})"
        return f"Keyring.{self.kind.value}()"


def _parse_keyring(value: Any) -> Keyring:
    if isinstance(value, Keyring):
        return value
    if isinstance(value, str):
        return Keyring.from_string(value)
    raise ValueError(f"keyring entries must be strings, got {type(value).__name__}")


KeyringField = Annotated[
    Keyring,
    PlainValidator(_parse_keyring),
    PlainSerializer(str, return_type=str),
]


def default_keyrings() -> List[Keyring]:
    return [Keyring.default()]


class KeyringConfig(BaseModel):
    """Configuration for keyring behavior."""

    model_config = ConfigDict(frozen=True)

    service: str = Field(
        ...,
        min_length=1,
        description="Application/service identifier for keyring entries.",
    )
    keyrings: List[KeyringField] = Field(
        default_factory=default_keyrings,
        description="Keyrings to search, in priority order. First keyring with the entry wins.",
    )
    optional: bool = Field(
        default=False,
        description="Don't fail if the secret is not found in any keyring.",
    )
