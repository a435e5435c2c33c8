"""Exceptions raised by scoped-totp."""


class OTPError(Exception):
    """Base class for all scoped-totp errors."""


class InvalidKey(OTPError, ValueError):
    """The secret token cannot be used as an HMAC key."""


class EncodingError(OTPError, ValueError):
    """The modifier cannot be encoded as UTF-8."""
