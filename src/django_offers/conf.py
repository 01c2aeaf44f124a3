"""Django Offers configuration.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    OFFERS_CURRENCY = 'SEK'
    OFFERS_ALLOWED_VAT_PERCENTS = (0, 6, 12, 25)
    OFFERS_DISTANCE_PRICING_ENABLED = True
"""

from decimal import Decimal

from django.conf import settings
from django.utils.module_loading import import_string


DEFAULTS = {
    # Currency used for every offer amount (single-currency installation)
    'CURRENCY': 'NOK',
    # VAT applied to new offers when none is given
    'DEFAULT_VAT_PERCENT': Decimal('25'),
    # VAT percentages accepted by validate_offer()
    'ALLOWED_VAT_PERCENTS': (Decimal('0'), Decimal('25')),
    # Random bytes in a public access token (hex encoded, so 2x characters)
    'TOKEN_BYTES': 32,
    # Dotted path to a zero-argument callable returning a new access token
    'TOKEN_GENERATOR': 'django_offers.tokens.generate_access_token',
    # Read-after-write retry for recalculation (delay is multiplied by attempt)
    'READ_RETRY_ATTEMPTS': 3,
    'READ_RETRY_DELAY': 0.1,
    # Distance pricing is threaded through but not billed unless enabled
    'DISTANCE_PRICING_ENABLED': False,
    'DEFAULT_DISTANCE_INCREMENT': 150,
}


def get_setting(name: str, default=None):
    """Get a setting with OFFERS_ prefix, falling back to DEFAULTS."""
    if default is None:
        default = DEFAULTS.get(name)
    return getattr(settings, f"OFFERS_{name}", default)


def get_currency() -> str:
    """Return the configured offer currency code."""
    return get_setting('CURRENCY')


def get_default_vat_percent() -> Decimal:
    """Return the VAT percent used when an offer is created without one."""
    return Decimal(str(get_setting('DEFAULT_VAT_PERCENT')))


def get_allowed_vat_percents() -> tuple:
    """Return the allowed VAT percents as Decimals."""
    return tuple(Decimal(str(v)) for v in get_setting('ALLOWED_VAT_PERCENTS'))


def get_token_generator():
    """Resolve the configured access token generator callable."""
    return import_string(get_setting('TOKEN_GENERATOR'))


def is_distance_pricing_enabled() -> bool:
    """Check if distance cost is folded into transport line totals."""
    return bool(get_setting('DISTANCE_PRICING_ENABLED'))
