"""
Typed startup configuration for the signing workflow.

Built once from the SIGNDESK settings dict and handed to the services.
Invalid values surface through the Django system check registered in
DocumentsConfig.ready(), not at import time.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

from django.conf import settings
from django.core import checks
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class SigningConfig:
    default_origin: str = 'http://localhost:3000'
    enforce_sign_order: bool = False
    token_bytes: int = 32
    token_max_attempts: int = 5

    @classmethod
    def from_settings(cls, source=None):
        """
        Build and validate the config from a SIGNDESK-style dict.

        Raises:
            ImproperlyConfigured: on a missing or malformed value
        """
        values = getattr(settings, 'SIGNDESK', {}) if source is None else source

        default_origin = str(values.get('DEFAULT_ORIGIN', cls.default_origin)).rstrip('/')
        parsed = urlparse(default_origin)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ImproperlyConfigured(
                f"SIGNDESK['DEFAULT_ORIGIN'] must be an absolute http(s) URL, got {default_origin!r}"
            )

        token_bytes = values.get('TOKEN_BYTES', cls.token_bytes)
        if not isinstance(token_bytes, int) or not 16 <= token_bytes <= 48:
            raise ImproperlyConfigured("SIGNDESK['TOKEN_BYTES'] must be an integer between 16 and 48")

        token_max_attempts = values.get('TOKEN_MAX_ATTEMPTS', cls.token_max_attempts)
        if not isinstance(token_max_attempts, int) or token_max_attempts < 1:
            raise ImproperlyConfigured("SIGNDESK['TOKEN_MAX_ATTEMPTS'] must be a positive integer")

        return cls(
            default_origin=default_origin,
            enforce_sign_order=bool(values.get('ENFORCE_SIGN_ORDER', cls.enforce_sign_order)),
            token_bytes=token_bytes,
            token_max_attempts=token_max_attempts,
        )


# Singleton instance
_signing_config = None


def get_signing_config() -> SigningConfig:
    """Get the process-wide config, building it on first use."""
    global _signing_config
    if _signing_config is None:
        _signing_config = SigningConfig.from_settings()
    return _signing_config


def reset_signing_config():
    """Drop the cached config (used when settings change, e.g. in tests)."""
    global _signing_config
    _signing_config = None


def check_signing_config(app_configs=None, **kwargs):
    """System check: the SIGNDESK settings must build a valid SigningConfig."""
    try:
        SigningConfig.from_settings()
    except ImproperlyConfigured as e:
        return [checks.Error(str(e), id='documents.E001')]
    return []
