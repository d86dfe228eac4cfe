"""Configuration profiles.

A profile is a named partition of the layered configuration tree.  Profile
names are case-insensitive and stored lower-cased.
"""

from __future__ import annotations

from layered_keyring.constants import DEFAULT_PROFILE, GLOBAL_PROFILE


class Profile(str):
    """Case-insensitive profile name."""

    DEFAULT: "Profile"
    GLOBAL: "Profile"

    def __new__(cls, name: str) -> "Profile":
        return super().__new__(cls, str(name).strip().lower())

    @classmethod
    def default(cls) -> "Profile":
        return cls.DEFAULT

    def is_custom(self) -> bool:
        """Return ``True`` unless this is the default or global profile."""
        return self not in (Profile.DEFAULT, Profile.GLOBAL)

    def __repr__(self) -> str:
        return f"Profile({str(self)!r})"


Profile.DEFAULT = Profile(DEFAULT_PROFILE)
Profile.GLOBAL = Profile(GLOBAL_PROFILE)
