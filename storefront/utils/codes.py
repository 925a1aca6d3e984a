# storefront/utils/codes.py
from __future__ import annotations

import random
import string
import time
from typing import Optional

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(n: int) -> str:
    """Upper-case base36, e.g. 35 -> 'Z', 36 -> '10'."""
    if n < 0:
        raise ValueError("to_base36 expects a non-negative integer")
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(BASE36_ALPHABET[r])
    return "".join(reversed(out))


def random_base36(length: int, rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return "".join(rng.choice(BASE36_ALPHABET) for _ in range(length))


def now_ms() -> int:
    return int(time.time() * 1000)


def order_number(rng: Optional[random.Random] = None) -> str:
    """XM-<base36 ms timestamp>-<4 random>."""
    return f"XM-{to_base36(now_ms())}-{random_base36(4, rng)}"
