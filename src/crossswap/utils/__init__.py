"""Utility modules for crossswap."""

from crossswap.utils.cache import QuoteCache, request_fingerprint
from crossswap.utils.maintenance import MaintenanceLoop
from crossswap.utils.rate_limit import RateLimitDecision, RateLimiter, client_id_from_headers

__all__ = [
    "QuoteCache",
    "request_fingerprint",
    "MaintenanceLoop",
    "RateLimiter",
    "RateLimitDecision",
    "client_id_from_headers",
]
