"""Public access tokens for offers."""

import secrets

from django_offers.conf import get_setting, get_token_generator


def generate_access_token() -> str:
    """Return a cryptographically random hex token (OFFERS_TOKEN_BYTES bytes)."""
    return secrets.token_hex(get_setting('TOKEN_BYTES'))


def new_access_token() -> str:
    """Mint a token through the configured OFFERS_TOKEN_GENERATOR."""
    return get_token_generator()()
