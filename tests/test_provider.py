"""Tests for KeyringProvider: late binding, assembly and error policy."""

from __future__ import annotations

import sys
import threading

import pytest

from conftest import RecordingBackend
from layered_keyring.config.layered import Layered
from layered_keyring.config.profile import Profile
from layered_keyring.config.providers import Env, Serialized, YamlFile
from layered_keyring.errors import (
    ConfigurationError,
    PermissionDeniedError,
    SecretNotFoundError,
)
from layered_keyring.secrets.provider import KeyringProvider
from layered_keyring.secrets.schema import Keyring

USER = Keyring.user()
SYSTEM = Keyring.system()


def _source(**values) -> Layered:
    return Layered(Serialized.defaults(values))


# ── Construction ─────────────────────────────────────────────────────────


class TestConstruction:
    def test_new(self):
        provider = KeyringProvider.new("test-app", "test-key")
        assert provider.credential_name == "test-key"
        assert provider.config_key is None
        assert provider.profile is None

    def test_new_searches_user_keyring(self, recording_backend):
        with pytest.raises(SecretNotFoundError):
            KeyringProvider.new("test-app", "test-key", backend=recording_backend).data()
        assert recording_backend.calls == [(USER, "test-app", "test-key")]

    def test_system(self, recording_backend):
        provider = KeyringProvider.system("test-app", "test-key", backend=recording_backend)
        assert provider.credential_name == "test-key"
        with pytest.raises(SecretNotFoundError):
            provider.data()
        assert recording_backend.calls == [(SYSTEM, "test-app", "test-key")]

    def test_configured_by_wraps_plain_provider(self):
        provider = KeyringProvider.configured_by(Serialized.defaults({"service": "s"}), "k")
        assert isinstance(provider.source, Layered)

    def test_configured_by_shares_source(self):
        source = _source(service="s")
        a = KeyringProvider.configured_by(source, "a")
        b = KeyringProvider.configured_by(source, "b")
        assert a.source is source
        assert b.source is source

    def test_as_key(self):
        provider = KeyringProvider.new("test-app", "test-key").as_key("custom.config.key")
        assert provider.config_key == "custom.config.key"
        assert provider.credential_name == "test-key"

    def test_as_key_returns_new_instance(self):
        original = KeyringProvider.new("test-app", "test-key")
        updated = original.as_key("other")
        assert original.config_key is None
        assert updated is not original

    def test_with_profile(self):
        profile = Profile("production")
        provider = KeyringProvider.new("test-app", "test-key").with_profile(profile)
        assert provider.profile == profile

    def test_with_profile_accepts_string(self):
        provider = KeyringProvider.new("test-app", "test-key").with_profile("Staging")
        assert provider.profile == Profile("staging")

    def test_frozen(self):
        provider = KeyringProvider.new("test-app", "test-key")
        with pytest.raises(AttributeError):
            provider.credential_name = "other"  # type: ignore[misc]

    def test_metadata(self):
        assert KeyringProvider.new("test-app", "test-key").metadata().name == "keyring"


# ── data() ───────────────────────────────────────────────────────────────


class TestData:
    def test_system_secret_in_default_profile(self):
        backend = RecordingBackend({(SYSTEM, "svc", "api_key"): "abc123"})
        provider = KeyringProvider.system("svc", "api_key", backend=backend)
        assert provider.data() == {Profile.DEFAULT: {"api_key": "abc123"}}
        assert Profile.DEFAULT == "default"

    def test_output_key_override(self):
        backend = RecordingBackend({(SYSTEM, "svc", "api_key"): "abc123"})
        provider = KeyringProvider.system("svc", "api_key", backend=backend).as_key("secrets.api")
        assert provider.data() == {Profile.DEFAULT: {"secrets.api": "abc123"}}
        assert backend.calls == [(SYSTEM, "svc", "api_key")]

    def test_target_profile(self):
        backend = RecordingBackend({(USER, "svc", "api_key"): "abc123"})
        provider = KeyringProvider.new("svc", "api_key", backend=backend).with_profile("prod")
        assert provider.data() == {Profile("prod"): {"api_key": "abc123"}}

    def test_missing_required_secret_names_credential(self, recording_backend):
        provider = KeyringProvider.configured_by(
            _source(service="s", keyrings=["user"], optional=False),
            "cred",
            backend=recording_backend,
        )
        with pytest.raises(SecretNotFoundError, match="secret 'cred' not found in any keyring"):
            provider.data()
        assert recording_backend.calls == [(USER, "s", "cred")]

    def test_secret_not_found_is_configuration_error(self, recording_backend):
        provider = KeyringProvider.new("s", "cred", backend=recording_backend)
        with pytest.raises(ConfigurationError) as exc_info:
            provider.data()
        assert exc_info.value.credential_name == "cred"

    def test_missing_optional_secret_yields_empty_profile(self, recording_backend):
        provider = KeyringProvider.configured_by(
            _source(service="s", keyrings=["user"], optional=True),
            "cred",
            backend=recording_backend,
        ).with_profile("prod")
        assert provider.data() == {Profile("prod"): {}}

    def test_backend_error_wrapped_in_strict_mode(self):
        backend = RecordingBackend({(USER, "s", "cred"): PermissionDeniedError()})
        provider = KeyringProvider.configured_by(
            _source(service="s", keyrings=["user", "team"]), "cred", backend=backend
        )
        with pytest.raises(ConfigurationError, match="permission denied") as exc_info:
            provider.data()
        assert isinstance(exc_info.value.__cause__, PermissionDeniedError)
        assert not isinstance(exc_info.value, SecretNotFoundError)
        assert backend.queried_keyrings == [USER]

    def test_backend_error_swallowed_in_optional_mode(self):
        backend = RecordingBackend({(USER, "s", "cred"): PermissionDeniedError()})
        provider = KeyringProvider.configured_by(
            _source(service="s", keyrings=["user", "team"], optional=True), "cred", backend=backend
        )
        assert provider.data() == {Profile.DEFAULT: {}}
        assert backend.queried_keyrings == [USER, Keyring.named("team")]

    def test_no_caching_between_calls(self):
        backend = RecordingBackend({(USER, "s", "cred"): "first"})
        provider = KeyringProvider.new("s", "cred", backend=backend)
        assert provider.data() == {Profile.DEFAULT: {"cred": "first"}}
        backend.responses[(USER, "s", "cred")] = "second"
        assert provider.data() == {Profile.DEFAULT: {"cred": "second"}}
        assert len(backend.calls) == 2


class TestConfigExtraction:
    def test_missing_service_fails_even_when_optional(self, recording_backend):
        provider = KeyringProvider.configured_by(
            _source(optional=True), "cred", backend=recording_backend
        )
        with pytest.raises(ConfigurationError, match="^keyring config:"):
            provider.data()
        assert recording_backend.calls == []

    def test_malformed_keyrings_fail(self, recording_backend):
        provider = KeyringProvider.configured_by(
            _source(service="s", keyrings=["user", 7], optional=True),
            "cred",
            backend=recording_backend,
        )
        with pytest.raises(ConfigurationError, match="keyrings"):
            provider.data()
        assert recording_backend.calls == []

    def test_defaults_apply_when_fields_absent(self, recording_backend):
        provider = KeyringProvider.configured_by(
            _source(service="s"), "cred", backend=recording_backend
        )
        with pytest.raises(SecretNotFoundError):
            provider.data()
        assert recording_backend.queried_keyrings == [USER]


class TestLateBinding:
    def test_config_read_when_data_requested(self, monkeypatch):
        backend = RecordingBackend({(Keyring.named("team"), "late-app", "token"): "t0k3n"})
        provider = KeyringProvider.configured_by(
            Layered(Env("LKTEST_KEYRING_")), "token", backend=backend
        )
        monkeypatch.setenv("LKTEST_KEYRING_SERVICE", "late-app")
        monkeypatch.setenv("LKTEST_KEYRING_KEYRINGS", "[user, team]")
        assert provider.data() == {Profile.DEFAULT: {"token": "t0k3n"}}
        assert backend.queried_keyrings == [USER, Keyring.named("team")]

    def test_env_scalars_stay_strings(self, monkeypatch):
        backend = RecordingBackend({(Keyring.named("on"), "2024", "token"): "t0k3n"})
        provider = KeyringProvider.configured_by(
            Layered(Env("LKTEST_KEYRING_")), "token", backend=backend
        )
        monkeypatch.setenv("LKTEST_KEYRING_SERVICE", "2024")
        monkeypatch.setenv("LKTEST_KEYRING_KEYRINGS", "[user, on]")
        monkeypatch.setenv("LKTEST_KEYRING_OPTIONAL", "no")
        assert provider.data() == {Profile.DEFAULT: {"token": "t0k3n"}}
        assert backend.calls == [
            (USER, "2024", "token"),
            (Keyring.named("on"), "2024", "token"),
        ]

    def test_config_from_yaml_file(self, tmp_path):
        cfg = tmp_path / "keyring.yaml"
        cfg.write_text("service: file-app\nkeyrings: [system]\noptional: true\n")
        backend = RecordingBackend()
        provider = KeyringProvider.configured_by(YamlFile(cfg), "token", backend=backend)
        assert provider.data() == {Profile.DEFAULT: {}}
        assert backend.calls == [(SYSTEM, "file-app", "token")]

    def test_config_uses_selected_profile_of_source(self):
        source = Layered(
            Serialized.defaults({"service": "app"}),
            Serialized({"service": "app-prod", "keyrings": ["system"]}, profile="production"),
        ).select("production")
        backend = RecordingBackend({(SYSTEM, "app-prod", "k"): "v"})
        provider = KeyringProvider.configured_by(source, "k", backend=backend)
        assert provider.data() == {Profile.DEFAULT: {"k": "v"}}


class TestComposition:
    def test_merged_into_layered_config(self):
        backend = RecordingBackend({(SYSTEM, "svc", "api_key"): "abc123"})
        config = Layered(Serialized.defaults({"name": "app", "secrets": {"other": 1}})).merge(
            KeyringProvider.system("svc", "api_key", backend=backend).as_key("secrets.api")
        )
        assert config.merged() == {"name": "app", "secrets": {"other": 1, "api": "abc123"}}

    def test_keyring_overrides_file_value(self):
        backend = RecordingBackend({(USER, "svc", "password"): "from-keyring"})
        config = Layered(Serialized.defaults({"password": "plaintext"})).merge(
            KeyringProvider.new("svc", "password", backend=backend)
        )
        assert config.find_value("password") == "from-keyring"

    def test_optional_missing_keeps_existing_value(self, recording_backend):
        keyring_cfg = _source(service="svc", optional=True)
        config = Layered(Serialized.defaults({"password": "fallback"})).merge(
            KeyringProvider.configured_by(keyring_cfg, "password", backend=recording_backend)
        )
        assert config.find_value("password") == "fallback"

    def test_profile_scoped_secret(self):
        backend = RecordingBackend({(USER, "svc", "password"): "prod-pass"})
        config = Layered(Serialized.defaults({"password": "dev-pass"})).merge(
            KeyringProvider.new("svc", "password", backend=backend).with_profile("production")
        )
        assert config.find_value("password") == "dev-pass"
        assert config.select("production").find_value("password") == "prod-pass"

    def test_strict_failure_surfaces_on_extract(self, recording_backend):
        config = Layered(Serialized.defaults({"name": "app"})).merge(
            KeyringProvider.new("svc", "password", backend=recording_backend)
        )
        with pytest.raises(SecretNotFoundError):
            config.merged()


# ── Concurrency ──────────────────────────────────────────────────────────


class TestConcurrentResolution:
    def test_parallel_data_calls(self):
        threads_count = 8
        per_thread = 200
        errors = []
        results = {}
        start = threading.Barrier(threads_count)

        def worker(n):
            backend = RecordingBackend(
                {(USER, "svc", f"cred-{i}"): f"value-{n}-{i:04d}" for i in range(per_thread)}
            )
            try:
                start.wait()
                for i in range(per_thread):
                    provider = KeyringProvider.new("svc", f"cred-{i}", backend=backend)
                    results[(n, i)] = provider.data()
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        interval = sys.getswitchinterval()
        sys.setswitchinterval(1e-6)
        try:
            threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
        finally:
            sys.setswitchinterval(interval)

        assert errors == []
        assert len(results) == threads_count * per_thread
        assert results[(3, 17)] == {Profile.DEFAULT: {"cred-17": "value-3-0017"}}
