import hmac
import json
import os
import threading
import time

from sms_template.signing import calculate_signature

# Configurable paths via environment variables
APPS_PATH = os.environ.get("SMST_APPS_PATH", "/app/auth/apps.json")
MAX_CLOCK_SKEW_SECONDS = int(os.environ.get("SMST_MAX_CLOCK_SKEW_SECONDS", "300"))

# (sdkappid, random, time) triples seen inside the skew window
_seen_nonces = {}
_nonce_lock = threading.Lock()


def load_apps():
    """Load the sdkappid -> appkey registry.

    The file is a JSON object, e.g. {"1400000000": "secret-app-key"}.
    """
    if not os.path.exists(APPS_PATH):
        return {}

    with open(APPS_PATH, 'r', encoding='utf-8') as f:
        apps = json.load(f)

    return {str(app_id): str(app_key) for app_id, app_key in apps.items()}


def verify_signature(app_key, random, now, sig):
    """Verify that sig was computed from the app key, nonce and time.

    Args:
        app_key: The registered key for the requesting app
        random: The ``random`` query parameter
        now: The ``time`` body field
        sig: The ``sig`` body field

    Returns:
        bool: True if signature is valid, False otherwise
    """
    if not isinstance(sig, str):
        return False
    expected = calculate_signature(app_key, random, now)
    return hmac.compare_digest(expected.encode('utf-8'), sig.encode('utf-8'))


def is_fresh(now, current_time=None):
    """Check the request time is inside the allowed clock skew"""
    try:
        now = int(now)
    except (TypeError, ValueError):
        return False
    current_time = int(time.time()) if current_time is None else current_time
    return abs(current_time - now) <= MAX_CLOCK_SKEW_SECONDS


def register_nonce(app_id, random, now):
    """Record a nonce; returns False if it was already used in the window"""
    key = (str(app_id), str(random), str(now))
    with _nonce_lock:
        clean_expired_nonces()
        if key in _seen_nonces:
            return False
        _seen_nonces[key] = time.time() + MAX_CLOCK_SKEW_SECONDS
        return True


def clean_expired_nonces():
    """Drop nonces older than the skew window"""
    current_time = time.time()
    for key in [k for k, expire_time in _seen_nonces.items() if expire_time < current_time]:
        del _seen_nonces[key]
