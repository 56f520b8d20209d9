"""
Reconciliation service for sales target validation.
Decides which mismatches claimed by the verifier are real and which are
artifacts of PDF text extraction, and produces the final verdict.

Every heuristic is a named rule with the shape
``(observed, expected) -> corrected value or None``. Rules are tried in
order per field kind and the first one that returns a value wins.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .edit_distance import distance
from .field_extractor import strip_customer_code
from .normalizer import parse_amount, strip_thousands_separators

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = 'All fields match successfully'
FAILURE_MESSAGE = 'One or more fields do not match the expected values'
SIGNATURE_MISSING_MESSAGE = 'Customer signature is required but was not detected'

SIGNATURE_FIELD = 'Signature'

# Deliberately loose: a target within 10% of the expected value is accepted,
# which can hide a genuine discrepancy. Configurable, 0 disables it.
DEFAULT_NUMERIC_TOLERANCE = 0.10
DEFAULT_AGENT_MAX_DISTANCE = 1
DEFAULT_CUSTOMER_MAX_DISTANCE = 2

# Label text that extraction leaves glued to the end of a name,
# e.g. "ASHISH BHATTSales". Longest first.
NAME_NOISE_SUFFIXES = ('Contact', 'Office', 'Region', 'Sales', 'State', 'Area', 'Code', 'S')

_AGENT_FIELD_RE = re.compile(r'\b(?:am|agent)\b')


class FieldKind(str, Enum):
    AGENT = 'AGENT'
    CUSTOMER = 'CUSTOMER'
    TARGET = 'TARGET'
    SIGNATURE = 'SIGNATURE'
    OTHER = 'OTHER'


@dataclass(frozen=True)
class ProductTarget:
    product: str
    target_amount: int


@dataclass(frozen=True)
class ExpectedRecord:
    """The values a document is expected to carry."""
    agent_name: str
    customer_name: str
    targets: Tuple[ProductTarget, ...] = ()
    signature_required: bool = False

    @property
    def product_labels(self) -> List[str]:
        return [target.product for target in self.targets]


@dataclass
class FieldMismatchCandidate:
    """A discrepancy claimed by the verifier, subject to reconciliation."""
    field: str
    expected_value: str
    observed_value: str
    reason: str = ''

    def to_dict(self) -> dict:
        return {
            'field': self.field,
            'expectedValue': self.expected_value,
            'pdfValue': self.observed_value,
            'reason': self.reason,
        }


@dataclass
class ValidationResult:
    """
    Final verdict for one document.

    ``mismatches`` only holds true mismatches. Candidates explained away by
    reconciliation are kept in ``reconciled`` for diagnostics. ``success``
    is False when no verdict could be obtained at all.
    """
    valid: bool
    message: str
    mismatches: List[FieldMismatchCandidate] = field(default_factory=list)
    reconciled: List[FieldMismatchCandidate] = field(default_factory=list)
    success: bool = True

    @classmethod
    def failure(cls, message: str) -> 'ValidationResult':
        return cls(valid=False, message=message, success=False)

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'isValid': self.valid,
            'message': self.message,
            'mismatches': [mismatch.to_dict() for mismatch in self.mismatches],
        }


@dataclass(frozen=True)
class ReconciliationRule:
    name: str
    description: str
    apply: Callable[[str, str], Optional[str]]


def _fold(value: str) -> str:
    return ' '.join(value.split()).casefold()


def match_exact(observed: str, expected: str) -> Optional[str]:
    if _fold(observed) == _fold(expected):
        return observed
    return None


def strip_noise_suffix(observed: str, expected: str) -> Optional[str]:
    """
    Strip one trailing label word from the observed name.

    Suffixes match case-sensitively, in the shape extraction leaves behind
    ("ASHISH BHATTSales"), so an upper-case name word such as "SALES" is
    never treated as label text. Only one suffix is removed.
    """
    target = _fold(expected)
    value = observed.strip()

    for suffix in NAME_NOISE_SUFFIXES:
        if len(value) > len(suffix) and value.endswith(suffix):
            stripped = value[:-len(suffix)].rstrip(' :-')
            if _fold(stripped) == target:
                return stripped

    return None


def one_extra_trailing_char(observed: str, expected: str) -> Optional[str]:
    o, e = observed.strip(), expected.strip()
    if e and len(o) == len(e) + 1 and o.casefold().startswith(e.casefold()):
        return expected
    return None


def leading_initial_spacing(observed: str, expected: str) -> Optional[str]:
    """
    Repair a lost space in a leading initial.

    Tries "<first letter of expected> <observed>" and "<observed[0]> <observed[1:]>",
    so "AM AUTO SALES" and "M AUTO SALES" both match "A M AUTO SALES".
    """
    o, e = observed.strip(), expected.strip()
    if len(o) < 2 or not e:
        return None

    for repaired in (f'{e[0]} {o}', f'{o[0]} {o[1:]}'):
        if _fold(repaired) == _fold(e):
            return expected
    return None


def within_edit_distance(max_distance: int) -> Callable[[str, str], Optional[str]]:
    def rule(observed: str, expected: str) -> Optional[str]:
        if not observed.strip() or not expected.strip():
            return None
        if distance(observed.strip(), expected.strip()) <= max_distance:
            return expected
        return None
    return rule


def same_amount(observed: str, expected: str) -> Optional[str]:
    """Equal once digit grouping and whitespace are removed."""
    o, e = strip_thousands_separators(observed), strip_thousands_separators(expected)
    if o and o == e:
        return expected

    o_amount, e_amount = parse_amount(observed), parse_amount(expected)
    if o_amount is not None and o_amount == e_amount:
        return expected
    return None


def overread_digits(observed: str, expected: str) -> Optional[str]:
    """
    Accept a target read with extra digits.

    Either exactly ten times the expected value, or the expected value with
    one or two stray leading digits.
    """
    o_amount, e_amount = parse_amount(observed), parse_amount(expected)
    if o_amount is None or e_amount is None or e_amount <= 0:
        return None

    if o_amount == e_amount * 10:
        return expected

    o_digits, e_digits = str(o_amount), str(e_amount)
    for dropped in (1, 2):
        if len(o_digits) - dropped == len(e_digits) and o_digits[dropped:] == e_digits:
            return expected
    return None


def within_relative_tolerance(tolerance: float) -> Callable[[str, str], Optional[str]]:
    def rule(observed: str, expected: str) -> Optional[str]:
        o_amount, e_amount = parse_amount(observed), parse_amount(expected)
        if o_amount is None or e_amount is None or e_amount <= 0:
            return None
        if abs(o_amount - e_amount) / e_amount <= tolerance:
            return expected
        return None
    return rule


EXACT_MATCH = ReconciliationRule('exact_match', 'value matches', match_exact)
NOISE_SUFFIX = ReconciliationRule(
    'noise_suffix', 'value matches after removing trailing label text', strip_noise_suffix,
)
EXTRA_TRAILING_CHAR = ReconciliationRule(
    'extra_trailing_char', 'value matches apart from one extra trailing character',
    one_extra_trailing_char,
)
LEADING_INITIAL = ReconciliationRule(
    'leading_initial', 'value matches after restoring the space in a leading initial',
    leading_initial_spacing,
)
SAME_AMOUNT = ReconciliationRule(
    'same_amount', 'value matches after removing digit grouping', same_amount,
)
OVERREAD_DIGITS = ReconciliationRule(
    'overread_digits', 'value matches after dropping over-read digits', overread_digits,
)


def edit_distance_rule(max_distance: int) -> ReconciliationRule:
    return ReconciliationRule(
        f'edit_distance_{max_distance}',
        f'value matches within {max_distance} character edit(s)',
        within_edit_distance(max_distance),
    )


def relative_tolerance_rule(tolerance: float) -> ReconciliationRule:
    return ReconciliationRule(
        'relative_tolerance',
        f'value within {tolerance:.0%} of the expected target',
        within_relative_tolerance(tolerance),
    )


class ReconciliationEngine:
    """
    Separates true mismatches from extraction artifacts.

    Stateless once built; one engine can serve concurrent requests.
    """

    def __init__(
        self,
        numeric_tolerance: float = DEFAULT_NUMERIC_TOLERANCE,
        agent_max_distance: int = DEFAULT_AGENT_MAX_DISTANCE,
        customer_max_distance: int = DEFAULT_CUSTOMER_MAX_DISTANCE,
        log: Optional[logging.Logger] = None,
    ):
        self.log = log or logger

        target_rules = [EXACT_MATCH, SAME_AMOUNT, OVERREAD_DIGITS]
        if numeric_tolerance:
            target_rules.append(relative_tolerance_rule(numeric_tolerance))

        self.rules: Dict[FieldKind, List[ReconciliationRule]] = {
            FieldKind.AGENT: [
                EXACT_MATCH,
                NOISE_SUFFIX,
                EXTRA_TRAILING_CHAR,
                edit_distance_rule(agent_max_distance),
            ],
            FieldKind.CUSTOMER: [
                EXACT_MATCH,
                NOISE_SUFFIX,
                EXTRA_TRAILING_CHAR,
                LEADING_INITIAL,
                edit_distance_rule(customer_max_distance),
            ],
            FieldKind.TARGET: target_rules,
            FieldKind.SIGNATURE: [EXACT_MATCH],
            FieldKind.OTHER: [EXACT_MATCH],
        }

    @staticmethod
    def find_product(field_name: str, expected: ExpectedRecord) -> Optional[ProductTarget]:
        """The expected target whose product label appears in a field name."""
        squashed = re.sub(r'\s+', '', field_name).casefold()
        for target in sorted(expected.targets, key=lambda t: len(t.product), reverse=True):
            if re.sub(r'\s+', '', target.product).casefold() in squashed:
                return target
        return None

    def classify(self, candidate: FieldMismatchCandidate, expected: ExpectedRecord) -> FieldKind:
        name = candidate.field.casefold()

        if 'signature' in name:
            return FieldKind.SIGNATURE
        if 'customer' in name:
            return FieldKind.CUSTOMER
        if _AGENT_FIELD_RE.search(name):
            return FieldKind.AGENT
        if 'target' in name or self.find_product(candidate.field, expected):
            return FieldKind.TARGET
        if parse_amount(candidate.observed_value) is not None and parse_amount(candidate.expected_value) is not None:
            return FieldKind.TARGET
        return FieldKind.OTHER

    def _comparison_values(
        self,
        kind: FieldKind,
        candidate: FieldMismatchCandidate,
        expected: ExpectedRecord,
    ) -> Tuple[str, str]:
        """Observed and expected values to compare, expected taken from the record when known."""
        observed, truth = candidate.observed_value, candidate.expected_value

        if kind == FieldKind.AGENT and expected.agent_name:
            truth = expected.agent_name
        elif kind == FieldKind.CUSTOMER:
            truth = strip_customer_code(expected.customer_name or truth)
            observed = strip_customer_code(observed)
        elif kind == FieldKind.TARGET:
            product = self.find_product(candidate.field, expected)
            if product is not None:
                truth = str(product.target_amount)

        return observed, truth

    def reconcile_candidate(
        self,
        candidate: FieldMismatchCandidate,
        expected: ExpectedRecord,
    ) -> Tuple[FieldMismatchCandidate, Optional[ReconciliationRule]]:
        """
        Run the rules for one candidate.

        Returns:
            (candidate, rule) where rule is the one that explained the
            difference, or (unchanged candidate, None) for a true mismatch
        """
        kind = self.classify(candidate, expected)
        observed, truth = self._comparison_values(kind, candidate, expected)

        for rule in self.rules[kind]:
            corrected = rule.apply(observed, truth)
            if corrected is None:
                continue
            self.log.info(f"{candidate.field}: '{candidate.observed_value}' reconciled by {rule.name}")
            return replace(candidate, observed_value=corrected, reason=rule.description), rule

        self.log.info(
            f"{candidate.field}: mismatch confirmed "
            f"(expected '{candidate.expected_value}', found '{candidate.observed_value}')"
        )
        return candidate, None

    def reconcile(
        self,
        candidates: Iterable[FieldMismatchCandidate],
        expected: ExpectedRecord,
        signature_detected: Optional[bool] = None,
        verifier_valid: Optional[bool] = None,
        verifier_message: str = '',
    ) -> ValidationResult:
        """
        Build the final verdict from the verifier's mismatch candidates.

        A required signature that was not detected always fails the result
        and adds a Signature mismatch, whatever the other fields say.

        Args:
            candidates: Mismatches claimed by the verifier
            expected: The expected record
            signature_detected: Outcome of signature detection, None if not run
            verifier_valid: The verifier's own isValid flag
            verifier_message: The verifier's own summary message

        Returns:
            ValidationResult
        """
        mismatches: List[FieldMismatchCandidate] = []
        reconciled: List[FieldMismatchCandidate] = []

        for candidate in candidates:
            resolved, rule = self.reconcile_candidate(candidate, expected)
            if rule is None:
                mismatches.append(resolved)
            else:
                reconciled.append(resolved)

        signature_missing = expected.signature_required and not signature_detected
        if signature_missing:
            has_signature_mismatch = any(
                self.classify(mismatch, expected) == FieldKind.SIGNATURE for mismatch in mismatches
            )
            if not has_signature_mismatch:
                mismatches.append(FieldMismatchCandidate(
                    field=SIGNATURE_FIELD,
                    expected_value='Present',
                    observed_value='Not Present',
                    reason='Signature is required but was not detected',
                ))

        valid = not mismatches
        if valid:
            message = SUCCESS_MESSAGE
            if verifier_valid is False:
                self.log.warning("Verifier reported invalid, but every candidate reconciled")
        elif signature_missing and all(
            self.classify(mismatch, expected) == FieldKind.SIGNATURE for mismatch in mismatches
        ):
            message = SIGNATURE_MISSING_MESSAGE
        elif verifier_valid is False and verifier_message:
            message = verifier_message
        else:
            message = FAILURE_MESSAGE

        self.log.info(
            f"Reconciliation: {len(mismatches)} true mismatches, "
            f"{len(reconciled)} reconciled, valid={valid}"
        )
        return ValidationResult(
            valid=valid,
            message=message,
            mismatches=mismatches,
            reconciled=reconciled,
        )
