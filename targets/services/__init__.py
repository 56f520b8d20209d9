"""
Sales target document processing services.
Normalization, field extraction, verdict parsing and reconciliation are
pure; the verifier and signature detector wrap external calls.
"""

from .text_extractor import (
    extract_text_with_pages,
    compute_sha256,
    PageText,
)
from .normalizer import (
    normalize_document_text,
    parse_amount,
)
from .field_extractor import (
    extract_fields,
    ExtractedFieldSet,
)
from .response_sanitizer import (
    sanitize_response,
    parse_verdict,
    VerifierVerdict,
)
from .reconciliation import (
    ExpectedRecord,
    FieldMismatchCandidate,
    ProductTarget,
    ReconciliationEngine,
    ValidationResult,
)
from .verifier import get_verifier
from .signature import get_signature_detector

__all__ = [
    'extract_text_with_pages',
    'compute_sha256',
    'PageText',
    'normalize_document_text',
    'parse_amount',
    'extract_fields',
    'ExtractedFieldSet',
    'sanitize_response',
    'parse_verdict',
    'VerifierVerdict',
    'ExpectedRecord',
    'FieldMismatchCandidate',
    'ProductTarget',
    'ReconciliationEngine',
    'ValidationResult',
    'get_verifier',
    'get_signature_detector',
]
