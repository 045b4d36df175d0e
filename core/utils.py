"""Utility functions for prompt battle application."""

import math
import random
import string
import time
from datetime import datetime, timezone

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id(prefix: str = '') -> str:
    """Millisecond timestamp plus a random base-36 suffix."""
    suffix = ''.join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}{int(time.time() * 1000)}-{suffix}"


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like JavaScript's Math.round (halves go up, not to even)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def estimate_tokens(text: str) -> int:
    """Rough token estimate: words * 1.3."""
    words = len(text.split())
    return math.ceil(words * 1.3)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + '...'


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
