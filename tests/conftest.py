"""Shared fixtures for layered-keyring tests."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple, Union

import pytest

from layered_keyring.display.logging_config import secret_redaction_filter
from layered_keyring.errors import NotFoundError
from layered_keyring.secrets.backend import SecretBackend, reset_backend
from layered_keyring.secrets.schema import Keyring

Lookup = Tuple[Keyring, str, str]


class RecordingBackend(SecretBackend):
    """In-memory backend that records every lookup.

    *responses* maps ``(keyring, service, username)`` to a secret string or
    to an exception instance to raise.  Unknown lookups raise
    :class:`NotFoundError`.
    """

    def __init__(self, responses: Optional[Dict[Lookup, Union[str, Exception]]] = None) -> None:
        self.responses: Dict[Lookup, Union[str, Exception]] = dict(responses or {})
        self.calls: List[Lookup] = []

    def get_secret(self, identifier: Keyring, service: str, username: str) -> str:
        self.calls.append((identifier, service, username))
        result = self.responses.get((identifier, service, username))
        if result is None:
            raise NotFoundError(f"{service}/{username}")
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def queried_keyrings(self) -> List[Keyring]:
        return [call[0] for call in self.calls]


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture(autouse=True)
def _isolate_global_state():
    yield
    secret_redaction_filter.clear()
    reset_backend()
