"""
Validation pipeline for sales target documents.

raw page text -> normalizer -> field extractor -> verifier -> response
sanitizer -> reconciliation engine -> ValidationResult

Empty documents and unusable verifier answers become failure results.
Transport errors from the verifier or signature detector are raised to
the caller.
"""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterable, List, Optional

from .conf import get_setting
from .exceptions import EmptyInputError, VerdictError
from .services.field_extractor import ExtractedFieldSet, extract_fields
from .services.normalizer import normalize_document_text
from .services.reconciliation import ExpectedRecord, ReconciliationEngine, ValidationResult
from .services.response_sanitizer import parse_verdict
from .services.signature import SignatureDetector
from .services.text_extractor import compute_sha256, extract_text_with_pages
from .services.verifier import Verifier

logger = logging.getLogger(__name__)

EMPTY_DOCUMENT_MESSAGE = 'No text could be extracted from the document'
UNREADABLE_VERDICT_MESSAGE = 'Could not read the verification result'


@dataclass
class PreparedDocument:
    normalized_text: str
    fields: ExtractedFieldSet


def get_engine(log: Optional[logging.Logger] = None) -> ReconciliationEngine:
    """Get a reconciliation engine configured from settings."""
    return ReconciliationEngine(
        numeric_tolerance=get_setting('NUMERIC_RELATIVE_TOLERANCE'),
        agent_max_distance=get_setting('AGENT_NAME_MAX_DISTANCE'),
        customer_max_distance=get_setting('CUSTOMER_NAME_MAX_DISTANCE'),
        log=log,
    )


def product_labels_for(expected: Optional[ExpectedRecord] = None) -> List[str]:
    """Configured product labels plus the ones named by the expected record."""
    labels = list(get_setting('PRODUCT_LABELS'))
    if expected is not None:
        labels.extend(expected.product_labels)
    return labels


def prepare_document(
    pages: Iterable[str],
    product_labels: Optional[Iterable[str]] = None,
    log: Optional[logging.Logger] = None,
) -> PreparedDocument:
    """
    Normalize page text and extract fields from it.

    Raises:
        EmptyInputError: if the pages hold no text
    """
    log = log or logger
    labels = list(product_labels or [])

    raw_text = '\n'.join(page for page in pages if page)
    normalized_text = normalize_document_text(raw_text, labels, log=log)
    log.info(f"Normalized text:\n{normalized_text}")

    fields = extract_fields(normalized_text, labels, log=log)
    return PreparedDocument(normalized_text=normalized_text, fields=fields)


def build_result(
    raw_verdict: Optional[str],
    expected: ExpectedRecord,
    signature_detected: Optional[bool] = None,
    engine: Optional[ReconciliationEngine] = None,
    log: Optional[logging.Logger] = None,
) -> ValidationResult:
    """Parse a verifier answer and reconcile it against the expected record."""
    log = log or logger
    engine = engine or ReconciliationEngine(log=log)

    try:
        verdict = parse_verdict(raw_verdict, log=log)
    except VerdictError as e:
        log.error(f"Unusable verifier response: {e}")
        return ValidationResult.failure(f"{UNREADABLE_VERDICT_MESSAGE}: {e}")

    return engine.reconcile(
        verdict.mismatches,
        expected,
        signature_detected=signature_detected,
        verifier_valid=verdict.is_valid,
        verifier_message=verdict.message,
    )


def validate_text(
    pages: Iterable[str],
    expected: ExpectedRecord,
    verifier: Verifier,
    signature_detected: Optional[bool] = None,
    engine: Optional[ReconciliationEngine] = None,
    product_labels: Optional[Iterable[str]] = None,
    log: Optional[logging.Logger] = None,
) -> ValidationResult:
    """
    Validate page text against an expected record.

    Args:
        pages: Raw text, one string per page
        expected: The values the document should carry
        verifier: Collaborator that compares the document with the expected values
        signature_detected: Outcome of signature detection, None if it was not run
        engine: Reconciliation engine, a default one if not given
        product_labels: Product row keywords, the expected record's products if not given
        log: Logger for pipeline tracing

    Returns:
        ValidationResult

    Raises:
        TransportError: if the verifier call fails
    """
    log = log or logger

    try:
        prepared = prepare_document(pages, product_labels or expected.product_labels, log=log)
    except EmptyInputError as e:
        log.warning(f"Nothing to validate: {e}")
        return ValidationResult.failure(EMPTY_DOCUMENT_MESSAGE)

    raw_verdict = verifier.verify(prepared.normalized_text, expected, prepared.fields)
    return build_result(raw_verdict, expected, signature_detected, engine, log)


def validate_document(
    file_obj: BinaryIO,
    filename: str,
    expected: ExpectedRecord,
    verifier: Verifier,
    signature_detector: Optional[SignatureDetector] = None,
    signature_detected: Optional[bool] = None,
    engine: Optional[ReconciliationEngine] = None,
    log: Optional[logging.Logger] = None,
) -> ValidationResult:
    """
    Validate an uploaded PDF against an expected record.

    Signature detection only runs when the record requires a signature and
    no outcome was passed in.

    Raises:
        DocumentReadError: if no text extraction method can read the file
        TransportError: if an external call fails
    """
    log = log or logger
    file_hash = compute_sha256(file_obj)
    log.info(f"Validating {filename} (sha256 {file_hash[:16]})")

    pages = extract_text_with_pages(file_obj, use_ocr_fallback=get_setting('USE_OCR_FALLBACK'))

    if expected.signature_required and signature_detected is None and signature_detector is not None:
        file_obj.seek(0)
        signature_detected = signature_detector.detect(file_obj.read())
        log.info(f"Signature detected: {signature_detected}")

    result = validate_text(
        [page.text for page in pages],
        expected,
        verifier,
        signature_detected=signature_detected,
        engine=engine or get_engine(log),
        product_labels=product_labels_for(expected),
        log=log,
    )
    log.info(f"{filename}: isValid={result.valid}, {len(result.mismatches)} mismatches")
    return result
