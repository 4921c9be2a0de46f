"""Shared slowapi limiter. The limit is configurable via UEM_RATE_LIMIT (default 60/minute)."""
from __future__ import annotations

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

RATE_LIMIT = os.environ.get("UEM_RATE_LIMIT", "60/minute")

limiter = Limiter(key_func=get_remote_address, default_limits=[RATE_LIMIT])
