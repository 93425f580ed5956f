"""
Item Identifier Generation

Generates identifiers for newly authored or identifier-less assessment items.
"""

import random
import string
import time


BASE36 = string.digits + string.ascii_lowercase


def generate_item_id() -> str:
    """
    Generate an item identifier

    Returns:
        Identifier such as item-1700000000000-k3j9x0q2a (epoch milliseconds
        plus nine random base-36 characters). Nothing is recorded between
        calls.
    """
    timestamp = int(time.time() * 1000)
    suffix = ''.join(random.choices(BASE36, k=9))
    return f"item-{timestamp}-{suffix}"
