"""
App settings for target validation.

Values come from the ``TARGET_VALIDATOR`` dictionary in Django settings,
falling back to the defaults below.
"""

from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULTS = {
    'OPENAI_API_KEY': '',
    'OPENAI_BASE_URL': None,
    'VERIFIER_MODEL': 'gpt-4o-mini',
    'VERIFIER_TEMPERATURE': 0.1,
    'VERIFIER_MAX_TOKENS': 1000,
    'VERIFIER_TIMEOUT': 60,
    'SIGNATURE_MODEL': 'gpt-4o-mini',
    'SIGNATURE_RENDER_RESOLUTION': 150,
    'NUMERIC_RELATIVE_TOLERANCE': 0.10,
    'AGENT_NAME_MAX_DISTANCE': 1,
    'CUSTOMER_NAME_MAX_DISTANCE': 2,
    'PRODUCT_LABELS': ['BRAKE PARTS', 'BRAKE FLUID', 'OTHERS'],
    'USE_OCR_FALLBACK': True,
}


def get_setting(name: str) -> Any:
    """Return a TARGET_VALIDATOR setting, or its default."""
    if name not in DEFAULTS:
        raise ImproperlyConfigured(f"Unknown TARGET_VALIDATOR setting: {name}")

    overrides = getattr(settings, 'TARGET_VALIDATOR', None) or {}
    return overrides.get(name, DEFAULTS[name])
