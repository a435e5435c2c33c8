"""Tests for algorithm configuration."""

import dataclasses

import pytest
from cryptography.hazmat.primitives import hashes

from scoped_totp.config import DEFAULT_CONFIG, OTPConfig


def test_defaults():
    """Test the compatibility defaults."""
    assert DEFAULT_CONFIG == OTPConfig()
    assert DEFAULT_CONFIG.step_minutes == 3
    assert DEFAULT_CONFIG.digits == 6
    assert DEFAULT_CONFIG.tolerance == 2
    assert DEFAULT_CONFIG.algorithm == "sha1"
    assert DEFAULT_CONFIG.modulus == 1_000_000


def test_config_is_frozen():
    """Test that configs cannot be mutated."""
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_CONFIG.digits = 8


def test_hash_algorithm_instances():
    """Test that each call returns a new hash algorithm of the right type."""
    first = DEFAULT_CONFIG.hash_algorithm()
    second = DEFAULT_CONFIG.hash_algorithm()
    assert isinstance(first, hashes.SHA1)
    assert first is not second
    assert isinstance(OTPConfig(algorithm="sha256").hash_algorithm(), hashes.SHA256)
    assert isinstance(OTPConfig(algorithm="sha512").hash_algorithm(), hashes.SHA512)


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"step_minutes": 0}, "positive"),
        ({"step_minutes": -3}, "positive"),
        ({"step_minutes": float("nan")}, "positive"),
        ({"step_minutes": float("inf")}, "finite"),
        ({"step_minutes": float("-inf")}, "finite"),
        ({"step_minutes": 1e-300}, "at least one millisecond"),
        ({"step_minutes": "3"}, "must be a number"),
        ({"step_minutes": True}, "must be a number"),
        ({"digits": 5}, "between 6 and 10"),
        ({"digits": 11}, "between 6 and 10"),
        ({"digits": 6.0}, "must be an integer"),
        ({"tolerance": -1}, "must not be negative"),
        ({"tolerance": 1.5}, "must be an integer"),
        ({"algorithm": "md5"}, "Unsupported hash algorithm"),
        ({"algorithm": "SHA1"}, "Unsupported hash algorithm"),
    ],
)
def test_invalid_config(kwargs, message):
    """Test that invalid parameters raise ValueError."""
    with pytest.raises(ValueError, match=message):
        OTPConfig(**kwargs)


def test_fractional_step_minutes():
    """Test that fractional step lengths are accepted."""
    assert OTPConfig(step_minutes=0.5).step_minutes == 0.5


def test_from_env_defaults():
    """Test that an empty environment gives the defaults."""
    assert OTPConfig.from_env({}) == DEFAULT_CONFIG
    assert OTPConfig.from_env({"SCOPED_TOTP_DIGITS": "  "}) == DEFAULT_CONFIG


def test_from_env_values():
    """Test reading every parameter from the environment."""
    config = OTPConfig.from_env(
        {
            "SCOPED_TOTP_STEP_MINUTES": "5",
            "SCOPED_TOTP_DIGITS": "8",
            "SCOPED_TOTP_TOLERANCE": "1",
            "SCOPED_TOTP_ALGORITHM": " SHA256 ",
        }
    )
    assert config == OTPConfig(step_minutes=5, digits=8, tolerance=1, algorithm="sha256")
    assert isinstance(config.step_minutes, int)

    assert OTPConfig.from_env({"SCOPED_TOTP_STEP_MINUTES": "0.5"}).step_minutes == 0.5


def test_from_env_reads_os_environ(monkeypatch):
    """Test that os.environ is used when no mapping is given."""
    monkeypatch.setenv("SCOPED_TOTP_TOLERANCE", "4")
    assert OTPConfig.from_env().tolerance == 4


@pytest.mark.parametrize(
    "environ, message",
    [
        ({"SCOPED_TOTP_STEP_MINUTES": "three"}, "Invalid SCOPED_TOTP_STEP_MINUTES"),
        ({"SCOPED_TOTP_STEP_MINUTES": "inf"}, "finite"),
        ({"SCOPED_TOTP_STEP_MINUTES": "1e-300"}, "at least one millisecond"),
        ({"SCOPED_TOTP_DIGITS": "six"}, "Invalid SCOPED_TOTP_DIGITS"),
        ({"SCOPED_TOTP_TOLERANCE": "1.5"}, "Invalid SCOPED_TOTP_TOLERANCE"),
        ({"SCOPED_TOTP_DIGITS": "4"}, "between 6 and 10"),
        ({"SCOPED_TOTP_ALGORITHM": "md5"}, "Unsupported hash algorithm"),
    ],
)
def test_from_env_invalid(environ, message):
    """Test that malformed environment values raise ValueError."""
    with pytest.raises(ValueError, match=message):
        OTPConfig.from_env(environ)
