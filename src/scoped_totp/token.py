"""Convenience wrapper binding a secret token to a purpose."""

import base64
import re
from typing import Optional, Union

from scoped_totp.config import DEFAULT_CONFIG, OTPConfig
from scoped_totp.errors import InvalidKey
from scoped_totp.totp import (
    TimeSpec,
    Token,
    check_token,
    generate_code,
    validate_code,
)


_DIGITS_RE = re.compile(r"[0-9]+")


def decode_token(token: str) -> bytes:
    """
    Decode a secret token from Base32 (preferred), hex or Base64 text.

    Args:
        token: The encoded token. Surrounding whitespace is ignored and
            Base32 padding is optional.

    Returns:
        Decoded token as bytes.

    Raises:
        InvalidKey: If the text is empty.
        ValueError: If the token cannot be decoded from any of the formats.
    """
    token = token.strip()
    if not token:
        raise InvalidKey("Token text must not be empty")

    # Try Base32 first (common for OTP secrets)
    try:
        return base64.b32decode(token + "=" * (-len(token) % 8), casefold=True)
    except ValueError:
        pass

    try:
        return bytes.fromhex(token)
    except ValueError:
        pass

    try:
        return base64.b64decode(token, validate=True)
    except ValueError as e:
        raise ValueError(
            f"Unable to decode token from Base32, hex or Base64: {e}"
        ) from e


def format_code(code: int, digits: int = 6) -> str:
    """Render a code as text, keeping its leading zeros."""
    return f"{code:0{digits}d}"


def _parse_code(code: Union[int, str], digits: int) -> Optional[int]:
    if isinstance(code, bool):
        return None
    if isinstance(code, int):
        return code
    if isinstance(code, str):
        code = code.strip()
        if len(code) <= digits and _DIGITS_RE.fullmatch(code):
            return int(code)
    return None


class ScopedTOTP:
    """
    A secret token bound to an optional purpose and algorithm config.

    The instance keeps a reference to the caller's token object and never
    a decoded or converted copy: text tokens are decoded and bytes-like
    tokens converted inside each call, and the result is dropped when the
    call returns. The caller owns the token's lifetime.
    """

    def __init__(
        self,
        token: Union[Token, str],
        modifier: Optional[str] = None,
        config: Optional[OTPConfig] = None,
    ):
        """
        Initialize a ScopedTOTP instance.

        Args:
            token: Secret token as bytes, or as Base32, hex or Base64 text.
            modifier: Purpose the codes are issued for (default: none).
            config: Algorithm parameters (default: DEFAULT_CONFIG).

        Raises:
            InvalidKey: If the token is empty or not bytes or text.
            ValueError: If a text token cannot be decoded.
        """
        self._token = token
        # Fail on construction rather than on first use
        self._key()
        self.modifier = modifier
        self.config = config or DEFAULT_CONFIG

    def __repr__(self) -> str:
        return f"ScopedTOTP(modifier={self.modifier!r}, config={self.config!r})"

    def _key(self) -> bytes:
        token = self._token
        if isinstance(token, str):
            token = decode_token(token)
        return check_token(token)

    def for_purpose(self, modifier: Optional[str]) -> "ScopedTOTP":
        """Return a ScopedTOTP with the same token and config but another modifier."""
        return type(self)(self._token, modifier=modifier, config=self.config)

    def at(self, for_time: TimeSpec) -> int:
        """Generate the code for the given point in time."""
        return generate_code(
            self._key(), self.modifier, config=self.config, for_time=for_time
        )

    def now(self) -> int:
        """Generate the code for the current time."""
        return generate_code(self._key(), self.modifier, config=self.config)

    def formatted(self, for_time: Optional[TimeSpec] = None) -> str:
        """Generate a code and render it zero-padded to the configured digits."""
        code = generate_code(
            self._key(), self.modifier, config=self.config, for_time=for_time
        )
        return format_code(code, self.config.digits)

    def verify(self, code: Union[int, str], for_time: Optional[TimeSpec] = None) -> bool:
        """
        Verify a code typed by a user or parsed from a request.

        Args:
            code: The code as an integer or a string of ASCII digits.
            for_time: Point in time to verify at (default: now).

        Returns:
            True if the code is valid for this token and modifier.
        """
        parsed = _parse_code(code, self.config.digits)
        if parsed is None:
            return False
        return validate_code(
            parsed, self._key(), self.modifier, config=self.config, for_time=for_time
        )
