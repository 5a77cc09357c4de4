"""
Signer token business logic service layer.

Responsibilities:
- Mint unique, unguessable per-signer tokens at send time
- Look signers up by token

Uses token_utils for pure utility functions to avoid duplication.
"""

import logging

from ..config import get_signing_config
from ..exceptions import DependencyFailure, NotFound
from .token_utils import generate_secure_token, mask_token

logger = logging.getLogger(__name__)


class SignerTokenService:
    """Service for signer token logic."""

    @staticmethod
    def mint_token(config=None, generator=generate_secure_token):
        """
        Generate a token that no signer holds yet.

        Args:
            config: SigningConfig (defaults to the process-wide config)
            generator: callable(length) -> str

        Returns:
            str: the new token

        Raises:
            DependencyFailure: if the generator fails or keeps colliding
        """
        from ..models import Signer

        config = config or get_signing_config()

        for attempt in range(1, config.token_max_attempts + 1):
            try:
                token = generator(config.token_bytes)
            except Exception as e:
                logger.error("Token generator failed: %s", e)
                raise DependencyFailure('Could not generate a signing token') from e

            if token and not Signer.objects.filter(token=token).exists():
                return token

            logger.warning("Token collision on attempt %d (%s)", attempt, mask_token(token))

        raise DependencyFailure('Could not generate a unique signing token')

    @staticmethod
    def get_signer_by_token(token, for_update=False):
        """
        Resolve a token to its signer (with document).

        Raises:
            NotFound: if the token is blank or unknown
        """
        from ..models import Signer

        if not token:
            raise NotFound('Invalid token')

        queryset = Signer.objects.select_related('document')
        if for_update:
            queryset = queryset.select_for_update()

        try:
            return queryset.get(token=token)
        except Signer.DoesNotExist:
            raise NotFound('Invalid token')


# Singleton instance
_token_service = None


def get_token_service() -> SignerTokenService:
    """Get singleton instance of token service."""
    global _token_service
    if _token_service is None:
        _token_service = SignerTokenService()
    return _token_service
