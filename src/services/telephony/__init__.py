"""Telephony services (Plivo).

- PlivoService: speech-gather XML generation, outbound call placement
"""

from src.services.telephony.plivo import PlivoCallInfo, PlivoService, TelephonyError

__all__ = [
    "PlivoService",
    "PlivoCallInfo",
    "TelephonyError",
]
