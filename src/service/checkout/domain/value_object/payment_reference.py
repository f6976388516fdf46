import secrets
import string
import time


PAYMENT_REFERENCE_PREFIX = 'THUB'
_ALPHABET = string.ascii_uppercase + string.digits


def generate_payment_reference() -> str:
    """Caller-supplied unique reference for one gateway attempt, e.g. THUB-1718000000000-8K2QZP"""
    millis = time.time_ns() // 1_000_000
    suffix = ''.join(secrets.choice(_ALPHABET) for _ in range(6))
    return f'{PAYMENT_REFERENCE_PREFIX}-{millis}-{suffix}'
