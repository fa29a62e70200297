"""One-time passcode collection for 2FA-protected npm publishes."""

from .collector import OtpCollector, OtpSettings, collect_otp
from .errors import TIMEOUT_MESSAGE, OtpError
from .session import OtpRequest, OtpSession

__all__ = [
    "OtpCollector",
    "OtpError",
    "OtpRequest",
    "OtpSession",
    "OtpSettings",
    "TIMEOUT_MESSAGE",
    "collect_otp",
]
