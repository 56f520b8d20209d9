"""
Field extraction service for sales target documents.
Rule-based extraction over normalized text.

The extracted fields are diagnostic: they are logged, passed to the
verifier as plausibility hints, and never override the verifier's own
reading of the document.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Pattern

from .normalizer import SUMMARY_ROW_RE, merge_product_labels, strip_thousands_separators

logger = logging.getLogger(__name__)

_CUSTOMER_CODE_RE = re.compile(r'^\s*\[[^\]]*\]\s*-?\s*\d+\s*-\s*')
_AMOUNT_RE = re.compile(r'\d+(?:,\d+)*')
_TRAILING_NON_LETTERS_RE = re.compile(r'[^A-Za-z]+$')
_TRAILING_NON_ALNUM_RE = re.compile(r'[^A-Za-z0-9]+$')


@dataclass
class ExtractedFieldSet:
    """Fields read from a normalized document. Any of them may be missing."""
    agent_name: Optional[str] = None
    region: Optional[str] = None
    customer_name: Optional[str] = None
    sales_office: Optional[str] = None
    product_targets: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'agent_name': self.agent_name,
            'region': self.region,
            'customer_name': self.customer_name,
            'sales_office': self.sales_office,
            'product_targets': dict(self.product_targets),
        }


def strip_customer_code(value: Optional[str]) -> str:
    """
    Remove a leading "[<code>] - <digits> -" prefix from a customer name.

    "[S]- 28661 - VOHRA DISTRIBUTORS" -> "VOHRA DISTRIBUTORS"
    """
    return _CUSTOMER_CODE_RE.sub('', value or '').strip()


def _clean_agent_name(value: str) -> str:
    return _TRAILING_NON_LETTERS_RE.sub('', value).strip()


def _clean_customer_name(value: str) -> str:
    return _TRAILING_NON_ALNUM_RE.sub('', strip_customer_code(value)).strip()


@dataclass
class FieldRule:
    """
    Definition of a labelled field extraction rule.

    The value starts after ``pattern`` and runs to the end of the line or to
    the first match of ``stop_pattern``, whichever comes first.
    """
    key: str
    label: str
    pattern: Pattern
    stop_pattern: Optional[Pattern] = None
    cleaner: Optional[Callable[[str], str]] = None


FIELD_RULES: List[FieldRule] = [
    # Area manager, e.g. "AM:ASHISH BHATTSales Office:North"
    FieldRule(
        key='agent_name',
        label='AM Name',
        pattern=re.compile(r'\bAM\s*:\s*'),
        stop_pattern=re.compile(r'Sales|Office|Contact|Region|Area|Code|State'),
        cleaner=_clean_agent_name,
    ),
    FieldRule(
        key='region',
        label='Region',
        pattern=re.compile(r'\bRegion\s*:\s*'),
        stop_pattern=re.compile(r'\bAM\s*:|Sales Office'),
    ),
    FieldRule(
        key='sales_office',
        label='Sales Office',
        pattern=re.compile(r'\bSales Office\s*:\s*'),
        stop_pattern=re.compile(r'Customer'),
    ),
    # Customer, e.g. "Customer:[S]-29870 - A M AUTO SALES"
    FieldRule(
        key='customer_name',
        label='Customer Name',
        pattern=re.compile(r'\bCustomer\s*:\s*'),
        stop_pattern=re.compile(r'Product|Sales Office|Region'),
        cleaner=_clean_customer_name,
    ),
]


def _apply_rule(rule: FieldRule, text: str) -> Optional[str]:
    match = rule.pattern.search(text)
    if not match:
        return None

    line_end = text.find('\n', match.end())
    value = text[match.end():] if line_end == -1 else text[match.end():line_end]

    if rule.stop_pattern is not None:
        stop = rule.stop_pattern.search(value)
        if stop:
            value = value[:stop.start()]

    if rule.cleaner is not None:
        value = rule.cleaner(value)
    value = value.strip()
    return value or None


def _product_patterns(labels: Iterable[str]) -> List[tuple]:
    return [
        (
            label,
            re.compile(
                '^' + '[ ]?'.join(re.escape(word) for word in label.split()) + r'(?![A-Za-z])',
                re.IGNORECASE,
            ),
        )
        for label in sorted(labels, key=len, reverse=True)
    ]


def extract_product_targets(
    normalized_text: str,
    product_labels: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    """
    Read the Target 2026 value of each product row.

    A product row is a line that starts with a known product label. The
    label must match as a whole keyword, so "OTHERSIDE" is not an OTHERS
    row. Lines starting with "Over All" are summary rows and are skipped
    even when they mention OTHERS. The last number on the row is the
    target; digit grouping is removed ("70,00,000" -> "7000000"). When a
    product has several rows the first one wins.

    Returns:
        Mapping of product label to its numeric string
    """
    patterns = _product_patterns(merge_product_labels(product_labels))
    targets: Dict[str, str] = {}

    for line in normalized_text.splitlines():
        line = line.strip()
        if not line or SUMMARY_ROW_RE.match(line):
            continue

        for label, pattern in patterns:
            match = pattern.match(line)
            if not match:
                continue
            numbers = _AMOUNT_RE.findall(line[match.end():])
            if numbers and label not in targets:
                targets[label] = strip_thousands_separators(numbers[-1])
            break

    return targets


def extract_fields(
    normalized_text: str,
    product_labels: Optional[Iterable[str]] = None,
    log: Optional[logging.Logger] = None,
) -> ExtractedFieldSet:
    """
    Extract the labelled fields and product targets from normalized text.

    Args:
        normalized_text: Output of normalize_document_text
        product_labels: Product row keywords in addition to the defaults
        log: Logger for the extracted values, defaults to this module's logger

    Returns:
        ExtractedFieldSet, with None for every field that was not found
    """
    log = log or logger
    fields = ExtractedFieldSet()

    for rule in FIELD_RULES:
        value = _apply_rule(rule, normalized_text)
        setattr(fields, rule.key, value)
        log.info(f"{rule.label}: {value}")

    fields.product_targets = extract_product_targets(normalized_text, product_labels)
    for label, amount in fields.product_targets.items():
        log.info(f"{label} Target: {amount}")

    return fields
