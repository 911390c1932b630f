"""
Unit tests for registry configuration, logging setup, and fingerprint helpers.
"""

from __future__ import annotations

import logging

import pytest
import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from pydantic import ValidationError

from trustchain.config import LoggingConfig, RegistryConfig, load_config
from trustchain.primitives.registry import (
    compute_code_fingerprint,
    compute_key_fingerprint,
    fingerprint_from_hex,
    fingerprint_hex,
)
from trustchain.systems.registry import RegistryService
from trustchain.telemetry.logging import setup_logging

CODE_FP = compute_code_fingerprint(b"training_code_v1")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "TRUSTCHAIN_REGISTRY__ADMIN_PRINCIPAL",
        "TRUSTCHAIN_REGISTRY__APPROVED_CODE_FINGERPRINT",
        "TRUSTCHAIN_REGISTRY__MIN_REPUTATION",
        "TRUSTCHAIN_LOGGING__LEVEL",
        "TRUSTCHAIN_LOGGING__FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


def write_yaml(path, *, admin="0xowner", code=None, min_reputation=None) -> None:
    lines = [
        "registry:",
        f"  admin_principal: \"{admin}\"",
        f"  approved_code_fingerprint: \"{code or fingerprint_hex(CODE_FP)}\"",
    ]
    if min_reputation is not None:
        lines.append(f"  min_reputation: {min_reputation}")
    lines += ["logging:", "  format: json"]
    path.write_text("\n".join(lines) + "\n")


# ─── Loading ─────────────────────────────────────────────────────


class TestLoadConfig:
    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "trustchain.yaml"
        write_yaml(path)

        config = load_config(path)

        assert config.registry.admin_principal == "0xowner"
        assert config.registry.approved_code_fingerprint_bytes == CODE_FP
        assert config.registry.min_reputation == 50
        assert config.logging.format == "json"

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "trustchain.yaml"
        write_yaml(path, min_reputation=60)
        monkeypatch.setenv("TRUSTCHAIN_REGISTRY__ADMIN_PRINCIPAL", "0xother")
        monkeypatch.setenv("TRUSTCHAIN_REGISTRY__MIN_REPUTATION", "70")

        config = load_config(path)

        assert config.registry.admin_principal == "0xother"
        assert config.registry.min_reputation == 70

    def test_non_numeric_env_minimum_fails_validation(self, tmp_path, monkeypatch):
        path = tmp_path / "trustchain.yaml"
        write_yaml(path)
        monkeypatch.setenv("TRUSTCHAIN_REGISTRY__MIN_REPUTATION", "abc")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_missing_registry_section_fails(self, tmp_path):
        with pytest.raises(ValidationError):
            load_config(tmp_path / "absent.yaml")

    def test_rejects_bad_fingerprint(self, tmp_path):
        path = tmp_path / "trustchain.yaml"
        write_yaml(path, code="0x1234")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_rejects_out_of_range_minimum(self, tmp_path):
        path = tmp_path / "trustchain.yaml"
        write_yaml(path, min_reputation=150)

        with pytest.raises(ValidationError):
            load_config(path)

    def test_rejects_blank_admin(self):
        with pytest.raises(ValidationError):
            RegistryConfig(admin_principal="   ", approved_code_fingerprint=CODE_FP.hex())

    def test_fingerprint_normalised(self):
        config = RegistryConfig(
            admin_principal="0xowner",
            approved_code_fingerprint=CODE_FP.hex().upper(),
        )
        assert config.approved_code_fingerprint == "0x" + CODE_FP.hex()


class TestServiceFromConfig:
    def test_builds_service(self, tmp_path):
        path = tmp_path / "trustchain.yaml"
        write_yaml(path, min_reputation=40)

        service = RegistryService.from_config(load_config(path))

        assert service.owner == "0xowner"
        assert service.approved_code_fingerprint == CODE_FP
        assert service.min_reputation == 40

    def test_accepts_registry_section(self):
        registry = RegistryConfig(
            admin_principal="0xowner",
            approved_code_fingerprint=fingerprint_hex(CODE_FP),
        )

        service = RegistryService.from_config(registry)

        key = compute_code_fingerprint(b"tpm_key_1")
        service.enroll("0xclient1", key, b"attestation_data")
        assert service.get_client("0xclient1").approved_code_fingerprint == CODE_FP


# ─── Fingerprints ────────────────────────────────────────────────


class TestFingerprints:
    def test_hex_round_trip_accepts_prefix(self):
        assert fingerprint_from_hex(fingerprint_hex(CODE_FP)) == CODE_FP
        assert fingerprint_from_hex(CODE_FP.hex()) == CODE_FP

    def test_hex_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            fingerprint_from_hex("ab" * 31)

    def test_key_fingerprint_accepts_str_or_bytes(self):
        public_key = Ed25519PrivateKey.generate().public_key()
        pem = public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

        fp_bytes = compute_key_fingerprint(pem)
        fp_text = compute_key_fingerprint(pem.decode())

        assert len(fp_bytes) == 32
        assert fp_bytes == fp_text

    def test_distinct_keys_distinct_fingerprints(self):
        def pem() -> bytes:
            return Ed25519PrivateKey.generate().public_key().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )

        assert compute_key_fingerprint(pem()) != compute_key_fingerprint(pem())


# ─── Logging ─────────────────────────────────────────────────────


class TestSetupLogging:
    def test_installs_single_stdout_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(LoggingConfig(level="warning", format="json"), registry_name="test")

            assert len(root.handlers) == 1
            assert root.level == logging.WARNING
        finally:
            structlog.contextvars.clear_contextvars()
            structlog.reset_defaults()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
