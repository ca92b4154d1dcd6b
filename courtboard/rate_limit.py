"""
Rate limiting configuration using slowapi.

Two tiers:
  • mutation – 20/min (court assignment and waitlist join – prevents double taps
    and scripted flooding of the backend)
  • default  – 120/min (board reads, wet-court admin, health)

The limiter keys on client IP by default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["120/minute"])

# Named rate strings for use in @limiter.limit() decorators
MUTATION = "20/minute"   # assignment / waitlist commands
DEFAULT = "120/minute"   # general API
