import hashlib
import secrets
import time
from typing import Tuple


NONCE_BYTES = 16


def start_session_token(user_id) -> Tuple[str, int]:
    """Return ``(session_id, timestamp_ms)`` for a new play attempt.

    The id is the SHA-256 of ``user_id``, the wall-clock time in ms and a
    random nonce, so clients cannot predict or forge it.
    """
    timestamp = int(time.time() * 1000)
    nonce = secrets.token_hex(NONCE_BYTES)
    payload = f"{user_id}-{timestamp}-{nonce}"
    return hashlib.sha256(payload.encode('utf-8')).hexdigest(), timestamp
