"""
Token utility functions used by the token service and the signing flow.

These are pure functions that don't depend on models; they can be imported
and used in multiple places without circular imports.
"""

import secrets


def generate_secure_token(length=32):
    """
    Generate a cryptographically secure random token.

    Args:
        length: int, number of random bytes (default 32)

    Returns:
        str: URL-safe token string

    Example:
        >>> token = generate_secure_token()
        >>> len(token)  # ~43 chars for 32 bytes
    """
    return secrets.token_urlsafe(length)


def build_signing_url(origin, token):
    """
    Build the externally visible signing URL for a signer token.

    Example:
        >>> build_signing_url('https://sign.example.com/', 'abc')
        'https://sign.example.com/sign/abc'
    """
    return f'{origin.rstrip("/")}/sign/{token}'


def mask_token(token):
    """Shorten a token for log output."""
    if not token:
        return '<none>'
    return f'{token[:8]}...'
