"""Layered configuration: profile-aware composition of providers.

A :class:`Layered` holds an ordered list of providers and combines their
contributions only when data is requested, so a layered configuration can
be handed around (and shared) before any of its sources are read::

    config = (
        Layered(Serialized.defaults({"service": "myapp"}))
        .merge(YamlFile("keyring.yaml"))
        .merge(Env("MYAPP_"))
    )
    settings = config.extract(MySettings)

Within each profile, mappings merge recursively and any other value
replaces the previous one.  Dotted keys (``"db.password"``) emitted by a
provider are expanded into nested mappings before merging.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from layered_keyring.config.profile import Profile
from layered_keyring.config.providers import Metadata, Provider
from layered_keyring.errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MERGE = "merge"
_JOIN = "join"


def _expand_dotted(values: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of *values* with dotted keys expanded into nested dicts."""
    expanded: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, dict):
            value = _expand_dotted(value)
        parts = [part for part in str(key).split(".") if part] or [str(key)]
        if len(parts) > 1:
            for part in reversed(parts[1:]):
                value = {part: value}
        _combine(expanded, {parts[0]: value}, override=True)
    return expanded


def _combine(base: Dict[str, Any], incoming: Dict[str, Any], *, override: bool) -> None:
    """Fold *incoming* into *base* in place.

    Nested mappings are combined recursively.  For conflicting leaves,
    *incoming* wins when *override* is set, otherwise *base* is kept.
    """
    for key, value in incoming.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _combine(current, value, override=override)
        elif key not in base or override:
            base[key] = _copy(value)


def _copy(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _copy(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_copy(item) for item in value]
    return value


def _format_validation_errors(exc: ValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


class Layered(Provider):
    """An immutable, lazily evaluated stack of configuration providers.

    :meth:`merge` and :meth:`join` return new instances; the original is
    never modified, so one ``Layered`` can safely back several consumers.
    Providers are queried every time data is requested; nothing is cached.
    """

    def __init__(
        self,
        *providers: Provider,
        profile: Union[Profile, str] = Profile.DEFAULT,
    ) -> None:
        self._layers: Tuple[Tuple[str, Provider], ...] = tuple((_MERGE, p) for p in providers)
        self._profile = Profile(profile)

    @classmethod
    def from_provider(cls, provider: Provider) -> "Layered":
        if isinstance(provider, Layered):
            return provider
        return cls(provider)

    def _with_layers(
        self,
        layers: Tuple[Tuple[str, Provider], ...],
        profile: Profile,
    ) -> "Layered":
        clone = Layered(profile=profile)
        clone._layers = layers
        return clone

    # ── Composition ─────────────────────────────────────────────────

    def merge(self, provider: Provider) -> "Layered":
        """Layer *provider* on top; its values override existing ones."""
        return self._with_layers(self._layers + ((_MERGE, provider),), self._profile)

    def join(self, provider: Provider) -> "Layered":
        """Layer *provider* underneath; existing values take precedence."""
        return self._with_layers(self._layers + ((_JOIN, provider),), self._profile)

    def select(self, profile: Union[Profile, str]) -> "Layered":
        """Return a copy that extracts from *profile*."""
        return self._with_layers(self._layers, Profile(profile))

    @property
    def profile(self) -> Profile:
        return self._profile

    @property
    def providers(self) -> List[Provider]:
        return [provider for _, provider in self._layers]

    # ── Provider interface ──────────────────────────────────────────

    def metadata(self) -> Metadata:
        names = ", ".join(str(p.metadata()) for p in self.providers)
        return Metadata("layered", names or None)

    def data(self) -> Dict[Profile, Dict[str, Any]]:
        """Evaluate every provider and combine the results per profile.

        Raises :class:`ConfigurationError` if any provider fails.
        """
        combined: Dict[Profile, Dict[str, Any]] = {}
        for strategy, provider in self._layers:
            try:
                contribution = provider.data()
            except ConfigurationError:
                raise
            except Exception as exc:
                raise ConfigurationError(
                    f"Provider '{provider.metadata()}' failed: {exc}"
                ) from exc

            for profile, values in contribution.items():
                target = combined.setdefault(Profile(profile), {})
                _combine(target, _expand_dotted(values), override=strategy == _MERGE)
        return combined

    # ── Extraction ──────────────────────────────────────────────────

    def merged(self) -> Dict[str, Any]:
        """Return the effective values for the selected profile.

        The ``default`` profile is applied first, then the selected profile,
        then ``global``.
        """
        data = self.data()
        effective: Dict[str, Any] = {}
        order = [Profile.DEFAULT]
        if self._profile.is_custom():
            order.append(self._profile)
        order.append(Profile.GLOBAL)
        for profile in order:
            _combine(effective, data.get(profile, {}), override=True)
        return effective

    def find_value(self, path: str) -> Any:
        """Return the value at dotted *path* in the effective configuration."""
        node: Any = self.merged()
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                raise ConfigurationError(f"Missing configuration value: '{path}'")
            node = node[part]
        return node

    def contains(self, path: str) -> bool:
        try:
            self.find_value(path)
        except ConfigurationError:
            return False
        return True

    def extract(self, model: Type[T]) -> T:
        """Validate the effective configuration into *model*.

        *model* is usually a Pydantic model, but any type Pydantic can
        validate is accepted.  All validation errors are reported at once.
        """
        return self._validate(model, self.merged())

    def extract_inner(self, path: str, model: Optional[Type[T]] = None) -> Any:
        """Validate the value at dotted *path*, or return it raw without *model*."""
        value = self.find_value(path)
        if model is None:
            return value
        return self._validate(model, value)

    def _validate(self, model: Type[T], value: Any) -> T:
        logger.debug(
            "Extracting %s from profile '%s'.", getattr(model, "__name__", model), self._profile
        )
        try:
            if isinstance(model, type) and issubclass(model, BaseModel):
                return model.model_validate(value)  # type: ignore[return-value]
            return TypeAdapter(model).validate_python(value)
        except ValidationError as exc:
            error_summary = _format_validation_errors(exc)
            raise ConfigurationError(
                f"Configuration validation failed ({len(exc.errors())} error(s)):\n"
                f"{error_summary}"
            ) from exc

    def __repr__(self) -> str:
        return f"Layered(profile={str(self._profile)!r}, providers={len(self._layers)})"
