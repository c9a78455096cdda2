"""Web boundary layer for route aggregation.

This layer only fetches and ranks quotes and records reported outcomes.
It does not sign, broadcast or hold user funds.
"""

__all__ = [
    "contracts",
    "services",
    "controllers",
]
