"""
Normalizer service for sales target documents.
Repairs PDF text extraction artifacts and reshapes the text into
line-oriented records, one logical field or product row per line.

Normalization is deterministic: the same input always produces the same
output, and normalizing already-normalized text changes nothing.
"""

import logging
import re
from typing import Iterable, List, Optional

from ..exceptions import EmptyInputError

logger = logging.getLogger(__name__)

# Minimum number of spaced single letters collapsed into one word.
LETTER_RUN_THRESHOLD = 4

# Noise removal can expose new spacing patterns, so the stages are
# re-applied until the text settles.
MAX_PASSES = 3

DEFAULT_PRODUCT_LABELS = ('BRAKE PARTS', 'BRAKE FLUID', 'OTHERS')

# Product rows that also show up inside the "Over All" summary row.
CATCH_ALL_PRODUCTS = ('OTHERS',)

# Field labels that PDF extraction tends to glue onto the previous word,
# e.g. "AM:ASHISH BHATTSales Office:North".
FIELD_LABELS = (
    'Sales Office:',
    'Region:',
    'Customer:',
    'AM:',
    'Product',
    'Group',
    'Target',
    'Achievement',
    'Growth',
    'Policy',
    'Signature',
    'Date',
    'Contact',
    'CIN:',
)

ALLOWED_PUNCTUATION = ':.,-[]/'

_LINE_BREAK_RE = re.compile('\r\n|\r|\u2028|\u2029|\x0b|\x0c|\x85')
_HORIZONTAL_SPACE_RE = re.compile(r'[^\S\n]+')
_BLANK_RUN_RE = re.compile(r'\n{3,}')
_NOISE_RE = re.compile(r'[^A-Za-z0-9\s' + re.escape(ALLOWED_PUNCTUATION) + r']')
_GLUED_LABEL_RE = re.compile(
    r'(?<=[A-Za-z])'
    r'(?P<noise>[^A-Za-z0-9\s' + re.escape(ALLOWED_PUNCTUATION) + r']*)'
    r'(?P<label>' + '|'.join(
        # Bare word labels must not run on into lower-case letters ("Groups", "Dated")
        re.escape(label) + ('' if label.endswith(':') else r'(?![a-z])')
        for label in FIELD_LABELS
    ) + r')'
)
_DUPLICATE_LETTER_RE = re.compile(r'([A-Za-z])\1{2,}')
_DIGIT_LETTER_BOUNDARY_RE = re.compile(r'(?<=[A-Za-z])(?=\d)|(?<=\d)(?=[A-Za-z])')
_SECTION_MARKER_RE = re.compile(
    r'(?:^|(?<=\S) )(?P<kw>Target 2026|Customer Signature|Over ?All)(?![A-Za-z0-9])',
    re.IGNORECASE | re.MULTILINE,
)

SUMMARY_ROW_RE = re.compile(r'^\s*Over ?All(?![A-Za-z])', re.IGNORECASE)


def _is_letter(char: str) -> bool:
    return ('A' <= char <= 'Z') or ('a' <= char <= 'z')


def tidy_whitespace(text: str) -> str:
    """Collapse horizontal whitespace, trim lines, keep at most one blank line."""
    text = _HORIZONTAL_SPACE_RE.sub(' ', text)
    text = '\n'.join(line.strip() for line in text.split('\n'))
    text = _BLANK_RUN_RE.sub('\n\n', text)
    return text.strip()


def normalize_line_endings(text: str) -> str:
    return _LINE_BREAK_RE.sub('\n', text)


def collapse_whitespace(text: str) -> str:
    return tidy_whitespace(text)


def split_glued_labels(text: str) -> str:
    """
    Put a line break before a field label glued to the preceding word.

    "ASHISH BHATTSales Office:North" -> "ASHISH BHATT\\nSales Office:North"

    A label is only split off when a letter precedes it with no space in
    between. Noise symbols sitting between the letter and the label are kept
    on the first line so noise stripping cannot glue them back together.
    """
    return _GLUED_LABEL_RE.sub(r'\g<noise>\n\g<label>', text)


def repair_letter_spacing(text: str, threshold: int = LETTER_RUN_THRESHOLD) -> str:
    """
    Collapse runs of spaced single letters into one word.

    "A S H I S H" -> "ASHISH"
    "A M AUTO SALES" -> unchanged (run of 2 is below the threshold)

    Scans left to right. A single letter is a letter with no letter on
    either side. From a single letter the run is extended greedily while the
    next two characters are one space and another single letter. The run is
    collapsed only when it holds at least ``threshold`` letters; shorter runs
    are copied through with their spaces.
    """
    def is_single_letter(pos: int) -> bool:
        if not _is_letter(text[pos]):
            return False
        if pos > 0 and _is_letter(text[pos - 1]):
            return False
        if pos + 1 < length and _is_letter(text[pos + 1]):
            return False
        return True

    length = len(text)
    out: List[str] = []
    pos = 0

    while pos < length:
        if not is_single_letter(pos):
            out.append(text[pos])
            pos += 1
            continue

        run_start = pos
        run_letters = [text[pos]]
        while pos + 2 < length and text[pos + 1] == ' ' and is_single_letter(pos + 2):
            pos += 2
            run_letters.append(text[pos])

        if len(run_letters) >= threshold:
            out.append(''.join(run_letters))
        else:
            out.append(text[run_start:pos + 1])
        pos += 1

    return ''.join(out)


def repair_duplicate_letters(text: str) -> str:
    """
    Reduce a letter repeated three or more times to exactly two.

    "BHATTT" -> "BHATT", while "ALL" stays "ALL".
    """
    return _DUPLICATE_LETTER_RE.sub(r'\1\1', text)


def space_digit_letter_boundaries(text: str) -> str:
    """
    Insert a space wherever a letter touches a digit.

    "Target2026BRAKEPARTS" -> "Target 2026 BRAKEPARTS"
    """
    return _DIGIT_LETTER_BOUNDARY_RE.sub(' ', text)


def strip_noise_characters(text: str) -> str:
    """
    Drop everything except letters, digits, whitespace and ``: . , - [ ] /``.
    Bracketed customer codes such as ``[S]`` survive.
    """
    return tidy_whitespace(_NOISE_RE.sub('', text))


def _label_key(label: str) -> str:
    return re.sub(r'\s+', '', label).upper()


def _product_row_pattern(labels: Iterable[str]) -> Optional[re.Pattern]:
    alternatives = [
        '[ ]?'.join(re.escape(word) for word in label.split())
        for label in sorted(labels, key=len, reverse=True)
    ]
    if not alternatives:
        return None
    return re.compile(
        r'(?:^|(?<=\S) )(?P<kw>' + '|'.join(alternatives) + r')(?![A-Za-z])',
        re.IGNORECASE | re.MULTILINE,
    )


def segment_rows(text: str, product_labels: Iterable[str] = DEFAULT_PRODUCT_LABELS) -> str:
    """
    Start a new line at every section marker and product row keyword.

    Markers are "Target 2026", "Customer Signature" and the "Over All"
    summary row. Product keywords are rewritten to their canonical label so
    "BRAKEPARTS" becomes "BRAKE PARTS". A catch-all product such as OTHERS
    is never split out of an "Over All" summary row.
    """
    labels = list(product_labels)
    canonical = {_label_key(label): label for label in labels}

    def start_marker(match: re.Match) -> str:
        prefix = '\n' if match.group(0).startswith(' ') else ''
        return prefix + match.group('kw')

    def start_product_row(match: re.Match) -> str:
        prefix = '\n' if match.group(0).startswith(' ') else ''
        return prefix + canonical[_label_key(match.group('kw'))]

    text = _SECTION_MARKER_RE.sub(start_marker, text)

    all_rows = _product_row_pattern(labels)
    if all_rows is None:
        return text
    summary_rows = _product_row_pattern(
        label for label in labels if _label_key(label) not in CATCH_ALL_PRODUCTS
    )

    lines = []
    for line in text.split('\n'):
        if not SUMMARY_ROW_RE.match(line):
            lines.append(all_rows.sub(start_product_row, line))
            continue

        if summary_rows is not None:
            line = summary_rows.sub(start_product_row, line)
        summary, _, rest = line.partition('\n')
        lines.append(summary)
        if rest:
            lines.append(all_rows.sub(start_product_row, rest))

    return '\n'.join(lines)


def merge_product_labels(extra_labels: Optional[Iterable[str]] = None) -> List[str]:
    """Default product labels plus any extra ones, without duplicates."""
    merged: List[str] = []
    seen = set()
    for label in list(DEFAULT_PRODUCT_LABELS) + list(extra_labels or []):
        cleaned = ' '.join(label.split())
        key = _label_key(cleaned)
        if cleaned and key not in seen:
            seen.add(key)
            merged.append(cleaned)
    return merged


def _run_stages(text: str, product_labels: List[str], log: logging.Logger) -> str:
    stages = (
        ('line endings', normalize_line_endings),
        ('whitespace', collapse_whitespace),
        ('glued labels', split_glued_labels),
        ('letter spacing', repair_letter_spacing),
        ('duplicate letters', repair_duplicate_letters),
        ('digit/letter boundaries', space_digit_letter_boundaries),
        ('noise characters', strip_noise_characters),
        ('row segmentation', lambda value: segment_rows(value, product_labels)),
    )
    for name, stage in stages:
        updated = stage(text)
        if updated != text:
            log.debug(f"Normalizer stage '{name}' changed {len(text)} -> {len(updated)} chars")
        text = updated
    return text


def normalize_document_text(
    raw_text: Optional[str],
    product_labels: Optional[Iterable[str]] = None,
    log: Optional[logging.Logger] = None,
) -> str:
    """
    Normalize raw PDF page text for field extraction and verification.

    This is the main entry point for normalization. The stages run in a
    fixed order, each relying on the shape left by the previous one:

    1. line endings collapse to ``\\n``
    2. horizontal whitespace collapses, at most one blank line survives
    3. glued field labels get a line break before them
    4. spaced single letters (4 or more) are joined
    5. letters repeated 3+ times are cut back to 2
    6. letters and digits touching each other are spaced apart
    7. noise characters are removed
    8. section markers and product rows start new lines

    Args:
        raw_text: Text of one or more pages
        product_labels: Product row keywords in addition to the defaults
        log: Logger for stage tracing, defaults to this module's logger

    Returns:
        Line-oriented normalized text

    Raises:
        EmptyInputError: if there is no text, or nothing survives normalization
    """
    log = log or logger

    if raw_text is None or not raw_text.strip():
        raise EmptyInputError("No document text to normalize")

    labels = merge_product_labels(product_labels)
    text = raw_text
    for _ in range(MAX_PASSES):
        result = _run_stages(text, labels, log)
        if result == text:
            break
        text = result

    if not text:
        raise EmptyInputError("Document text is empty after normalization")

    log.debug(f"Normalized {len(raw_text)} chars into {len(text.splitlines())} lines")
    return text


def strip_thousands_separators(value: Optional[str]) -> str:
    """
    Remove digit grouping from an amount.

    Handles Indian grouping ("70,00,000") and plain grouping ("7,000,000").
    """
    return re.sub(r'[,\s]', '', value or '')


def parse_amount(value: Optional[str]) -> Optional[int]:
    """
    Parse a whole-number amount, ignoring digit grouping.

    "70,00,000" -> 7000000, "7080858.00" -> 7080858, "N/A" -> None
    """
    match = re.fullmatch(r'(\d+)(?:\.0*)?', strip_thousands_separators(value))
    if not match:
        return None
    return int(match.group(1))
