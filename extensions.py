"""
Shared Flask extension instances.

Kept out of app.py so blueprints can import them without a cycle.
"""

from __future__ import annotations

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["600 per hour"])
