"""Time-based one-time passwords bound to an optional purpose modifier.

Codes are derived RFC 4226 style from an HMAC over a 4-byte big-endian time
step, optionally followed by the UTF-8 bytes of a modifier such as
``"password-reset"``. A code issued for one modifier does not validate for
another, and omitting the modifier reproduces the plain time-step code.
"""

import datetime
import logging
import math
import time
from typing import Optional, Union

from cryptography.hazmat.primitives import hmac

from scoped_totp.config import DEFAULT_CONFIG, DEFAULT_STEP_MINUTES, OTPConfig
from scoped_totp.errors import EncodingError, InvalidKey


logger = logging.getLogger(__name__)

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)

TimeSpec = Union[datetime.datetime, int, float]
Token = Union[bytes, bytearray, memoryview]


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


def to_millis(for_time: Optional[TimeSpec] = None) -> int:
    """
    Convert a point in time to whole milliseconds since the Unix epoch.

    Args:
        for_time: A datetime (naive values are taken as local time), POSIX
            seconds as int or float, or None for the current system time.

    Returns:
        Milliseconds since the epoch, rounded down.

    Raises:
        TypeError: If for_time is of an unsupported type.
    """
    if for_time is None:
        return _now_millis()
    if isinstance(for_time, datetime.datetime):
        if for_time.tzinfo is None:
            for_time = for_time.astimezone()
        return (for_time - EPOCH) // datetime.timedelta(milliseconds=1)
    if isinstance(for_time, bool):
        raise TypeError("for_time must be a datetime or a number of seconds, not bool")
    if isinstance(for_time, int):
        return for_time * 1000
    if isinstance(for_time, float):
        # Round away float noise first so 1.001 seconds is 1001 ms
        return math.floor(round(for_time * 1000, 6))
    raise TypeError(
        f"for_time must be a datetime or a number of seconds, got {type(for_time).__name__}"
    )


def time_step_number(
    step_minutes: Union[int, float] = DEFAULT_STEP_MINUTES,
    for_time: Optional[TimeSpec] = None,
) -> float:
    """
    Return how many time steps have elapsed since the epoch.

    The quotient is deliberately not floored. Fractional steps survive until
    int_to_bytestring() truncates them, so validation offsets are added to the
    exact real-valued step.

    Args:
        step_minutes: Length of one time step in minutes (default: 3).
        for_time: Point in time to quantize (default: now).

    Returns:
        Real-valued time step number.
    """
    return to_millis(for_time) / (step_minutes * 60 * 1000)


def int_to_bytestring(value: Union[int, float]) -> bytes:
    """
    Encode a time step as 4 big-endian bytes.

    The value is truncated toward zero and wrapped modulo 2**32, so steps
    before the epoch or beyond 32 bits wrap around instead of failing.
    Non-finite values encode as zero.
    """
    if not math.isfinite(value):
        return bytes(4)
    return (int(value) & 0xFFFFFFFF).to_bytes(4, byteorder="big")


def apply_modifier(step_bytes: bytes, modifier: Optional[str] = None) -> bytes:
    """
    Bind a modifier to the encoded time step.

    Args:
        step_bytes: The 4-byte encoded time step.
        modifier: Optional purpose string. None and "" leave the input as is.

    Returns:
        The step bytes directly followed by the UTF-8 encoded modifier.

    Raises:
        EncodingError: If the modifier is not a string or is not valid UTF-8.
    """
    if not modifier:
        return step_bytes
    if not isinstance(modifier, str):
        raise EncodingError(
            f"Modifier must be a string, got {type(modifier).__name__}"
        )
    try:
        return step_bytes + modifier.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Modifier cannot be encoded as UTF-8: {e}") from e


def check_token(token: Token) -> bytes:
    """Return the token as bytes, or raise InvalidKey if it cannot key an HMAC."""
    if not isinstance(token, (bytes, bytearray, memoryview)):
        raise InvalidKey(f"Token must be bytes, got {type(token).__name__}")
    key = bytes(token)
    if not key:
        raise InvalidKey("Token must not be empty")
    return key


def compute_otp(
    token: Token,
    step_number: Union[int, float],
    modifier: Optional[str] = None,
    config: Optional[OTPConfig] = None,
) -> int:
    """
    Compute the code for one time step.

    Args:
        token: Secret token used as the HMAC key.
        step_number: Time step, possibly fractional.
        modifier: Optional purpose string bound into the hash input.
        config: Algorithm parameters (default: HMAC-SHA1, 6 digits).

    Returns:
        The numeric code, in [0, 10**digits).

    Raises:
        InvalidKey: If the token is empty or not bytes.
        EncodingError: If the modifier cannot be encoded.
    """
    config = config or DEFAULT_CONFIG
    key = check_token(token)

    message = apply_modifier(int_to_bytestring(step_number), modifier)

    # A fresh HMAC per computation; the objects are single use
    mac = hmac.HMAC(key, config.hash_algorithm())
    mac.update(message)
    digest = mac.finalize()

    # Dynamic truncation (RFC 4226, Section 5.4)
    offset = digest[-1] & 0x0F
    binary = (
        ((digest[offset] & 0x7F) << 24)
        | ((digest[offset + 1] & 0xFF) << 16)
        | ((digest[offset + 2] & 0xFF) << 8)
        | (digest[offset + 3] & 0xFF)
    )

    return binary % config.modulus


def generate_code(
    token: Token,
    modifier: Optional[str] = None,
    *,
    config: Optional[OTPConfig] = None,
    for_time: Optional[TimeSpec] = None,
) -> int:
    """
    Generate the time-based one-time password for the current time step.

    Args:
        token: Secret token, e.g. a user's security stamp.
        modifier: Optional purpose the code is issued for.
        config: Algorithm parameters (default: 3-minute steps, 6 digits).
        for_time: Point in time to generate for (default: now).

    Returns:
        The numeric code. Render it with format_code() to keep leading zeros.

    Raises:
        InvalidKey: If the token is empty or not bytes.
        EncodingError: If the modifier cannot be encoded.
    """
    config = config or DEFAULT_CONFIG
    step_number = time_step_number(config.step_minutes, for_time)
    return compute_otp(token, step_number, modifier, config)


def validate_code(
    code: int,
    token: Token,
    modifier: Optional[str] = None,
    *,
    config: Optional[OTPConfig] = None,
    for_time: Optional[TimeSpec] = None,
) -> bool:
    """
    Check a code against the current time step and its neighbours.

    With the default config a code is accepted up to two steps (six minutes)
    either side of the current step. A mismatch returns False; only an
    unusable token or modifier raises.

    Args:
        code: The code supplied by the user.
        token: Secret token the code was generated with.
        modifier: Purpose the code was generated for.
        config: Algorithm parameters (default: 3-minute steps, +/-2 steps).
        for_time: Point in time to validate at (default: now).

    Returns:
        True if the code matches any step in the tolerance window.

    Raises:
        InvalidKey: If the token is empty or not bytes.
        EncodingError: If the modifier cannot be encoded.
    """
    config = config or DEFAULT_CONFIG
    check_token(token)
    # Fail on a bad modifier even when the code is not an integer
    apply_modifier(b"", modifier)

    if isinstance(code, bool) or not isinstance(code, int):
        logger.debug("Rejecting non-integer code of type %s", type(code).__name__)
        return False

    step_number = time_step_number(config.step_minutes, for_time)

    for offset in range(-config.tolerance, config.tolerance + 1):
        if compute_otp(token, step_number + offset, modifier, config) == code:
            logger.debug("Code matched at step %d (offset %+d)", int(step_number), offset)
            return True

    logger.debug("No match within %d steps of step %d", config.tolerance, int(step_number))
    return False
