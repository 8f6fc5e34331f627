"""
Request signing for the SMS template API

Every request carries a ``sig`` computed from the app key, a random nonce
and the request time. Messaging operations additionally sign the list of
recipient phone numbers.
"""

import secrets
import time
from typing import Iterable, Optional

from cryptography.hazmat.primitives import hashes

# Nonces are sent as unsigned 32-bit integers
RANDOM_UPPER_BOUND = 1 << 32


def get_random() -> int:
    """Return a fresh request nonce"""
    return secrets.randbelow(RANDOM_UPPER_BOUND)


def get_current_time() -> int:
    """Return the current Unix time in whole seconds"""
    return int(time.time())


def signature_material(app_key, random, now, phone_numbers: Optional[Iterable] = None) -> str:
    material = f"appkey={app_key}&random={random}&time={now}"
    if phone_numbers is not None:
        material += "&mobile=" + ",".join(str(number) for number in phone_numbers)
    return material


def calculate_signature(app_key, random, now, phone_numbers: Optional[Iterable] = None) -> str:
    """
    Calculate the request signature.

    Args:
        app_key: Application secret key
        random: Request nonce, also sent as the ``random`` query parameter
        now: Unix timestamp, also sent as the ``time`` body field
        phone_numbers: Recipient numbers for messaging operations, signed in
            the order given. Template operations pass nothing here.

    Returns:
        str: Lowercase hex SHA-256 digest
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(signature_material(app_key, random, now, phone_numbers).encode('utf-8'))
    return digest.finalize().hex()
