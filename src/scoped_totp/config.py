"""Algorithm parameters for one-time password computation."""

import math
import os
from dataclasses import dataclass
from typing import Dict, Optional, Type, Union

from cryptography.hazmat.primitives import hashes


HASH_ALGORITHMS: Dict[str, Type[hashes.HashAlgorithm]] = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
    "sha512": hashes.SHA512,
}

DEFAULT_STEP_MINUTES = 3
DEFAULT_DIGITS = 6
DEFAULT_TOLERANCE = 2
DEFAULT_ALGORITHM = "sha1"

ENV_PREFIX = "SCOPED_TOTP_"


@dataclass(frozen=True)
class OTPConfig:
    """
    Parameters shared by code generation and validation.

    The defaults (HMAC-SHA1, 6 digits, 3-minute steps, +/-2 steps of drift)
    must match on both sides, otherwise previously issued codes stop validating.
    """

    step_minutes: Union[int, float] = DEFAULT_STEP_MINUTES
    digits: int = DEFAULT_DIGITS
    tolerance: int = DEFAULT_TOLERANCE
    algorithm: str = DEFAULT_ALGORITHM

    def __post_init__(self) -> None:
        if isinstance(self.step_minutes, bool) or not isinstance(
            self.step_minutes, (int, float)
        ):
            raise ValueError(f"step_minutes must be a number, got {self.step_minutes!r}")
        if not (math.isfinite(self.step_minutes) and self.step_minutes > 0):
            raise ValueError(
                f"step_minutes must be positive and finite, got {self.step_minutes}"
            )
        # Shorter steps overflow the step quotient
        if self.step_minutes * 60 * 1000 < 1:
            raise ValueError(
                f"step_minutes must be at least one millisecond, got {self.step_minutes}"
            )

        if isinstance(self.digits, bool) or not isinstance(self.digits, int):
            raise ValueError(f"digits must be an integer, got {self.digits!r}")
        # 31 bits of truncated hash hold at most 10 decimal digits
        if not 6 <= self.digits <= 10:
            raise ValueError(f"digits must be between 6 and 10, got {self.digits}")

        if isinstance(self.tolerance, bool) or not isinstance(self.tolerance, int):
            raise ValueError(f"tolerance must be an integer, got {self.tolerance!r}")
        if self.tolerance < 0:
            raise ValueError(f"tolerance must not be negative, got {self.tolerance}")

        if self.algorithm not in HASH_ALGORITHMS:
            supported = ", ".join(sorted(HASH_ALGORITHMS))
            raise ValueError(
                f"Unsupported hash algorithm {self.algorithm!r} (supported: {supported})"
            )

    @property
    def modulus(self) -> int:
        return 10**self.digits

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        """Return a new hash algorithm instance for an HMAC computation."""
        return HASH_ALGORITHMS[self.algorithm]()

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "OTPConfig":
        """
        Build a config from ``SCOPED_TOTP_*`` environment variables.

        Args:
            environ: Mapping to read from (default: ``os.environ``).

        Returns:
            OTPConfig with unset variables left at their defaults.

        Raises:
            ValueError: If a variable holds a malformed or out-of-range value.
        """
        if environ is None:
            environ = dict(os.environ)

        def _get(name: str) -> Optional[str]:
            value = environ.get(ENV_PREFIX + name)
            if value is None or not value.strip():
                return None
            return value.strip()

        kwargs: Dict[str, Union[int, float, str]] = {}

        step_minutes = _get("STEP_MINUTES")
        if step_minutes is not None:
            try:
                kwargs["step_minutes"] = (
                    int(step_minutes) if step_minutes.isdigit() else float(step_minutes)
                )
            except ValueError as e:
                raise ValueError(
                    f"Invalid {ENV_PREFIX}STEP_MINUTES: {step_minutes!r}"
                ) from e

        for name, field in (("DIGITS", "digits"), ("TOLERANCE", "tolerance")):
            raw = _get(name)
            if raw is None:
                continue
            try:
                kwargs[field] = int(raw)
            except ValueError as e:
                raise ValueError(f"Invalid {ENV_PREFIX}{name}: {raw!r}") from e

        algorithm = _get("ALGORITHM")
        if algorithm is not None:
            kwargs["algorithm"] = algorithm.lower()

        return cls(**kwargs)


DEFAULT_CONFIG = OTPConfig()
