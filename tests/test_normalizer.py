import pytest

from targets.exceptions import EmptyInputError
from targets.services.field_extractor import extract_fields
from targets.services.normalizer import (
    merge_product_labels,
    normalize_document_text,
    parse_amount,
    repair_letter_spacing,
    segment_rows,
    split_glued_labels,
    strip_thousands_separators,
)

from .conftest import SAMPLE_PAGE


def test_spaced_letters_are_joined():
    assert 'ASHISH' in normalize_document_text('A S H I S H').split()


def test_short_abbreviations_survive():
    assert 'A M AUTO SALES' in normalize_document_text('A M AUTO SALES')


def test_letter_spacing_threshold():
    assert repair_letter_spacing('A B C') == 'A B C'
    assert repair_letter_spacing('A B C D') == 'ABCD'
    assert repair_letter_spacing('X Y Z W AUTO') == 'XYZW AUTO'


def test_duplicate_letters_cut_back_to_two():
    assert 'BHATT' in normalize_document_text('BHATTT')
    assert 'BHATTT' not in normalize_document_text('BHATTT')
    assert normalize_document_text('ALL') == 'ALL'


def test_digits_and_letters_are_spaced_and_rows_split():
    assert normalize_document_text('Target2026BRAKEPARTS 40,00,000') == 'Target 2026\nBRAKE PARTS 40,00,000'


def test_glued_label_gets_own_line():
    text = normalize_document_text('AM:ASHISH BHATTSales Office:North')
    assert text.splitlines() == ['AM:ASHISH BHATT', 'Sales Office:North']


def test_line_endings_are_unified():
    assert normalize_document_text('Region:West\r\nAM:X\rCIN:1') == 'Region:West\nAM:X\nCIN:1'


def test_whitespace_collapses():
    assert normalize_document_text('Region:   West\t\t Zone\n\n\n\nAM:X') == 'Region: West Zone\n\nAM:X'


def test_noise_characters_removed_but_codes_kept():
    text = normalize_document_text('Customer:[S]-29870 - A M AUTO SALES*#')
    assert text == 'Customer:[S]-29870 - A M AUTO SALES'


def test_others_row_is_not_split_from_summary_row():
    text = normalize_document_text('BRAKE PARTS 40,00,000 OTHERS 25,00,000 Over All OTHERS 70,00,000')
    assert text.splitlines() == [
        'BRAKE PARTS 40,00,000',
        'OTHERS 25,00,000',
        'Over All OTHERS 70,00,000',
    ]


def test_extra_product_labels_start_rows():
    text = segment_rows('CLUTCH PLATES 100 BRAKE PARTS 200', merge_product_labels(['CLUTCH PLATES']))
    assert text.splitlines() == ['CLUTCH PLATES 100', 'BRAKE PARTS 200']


def test_merge_product_labels_drops_duplicates():
    assert merge_product_labels(['brake  parts', 'CLUTCH']) == ['BRAKE PARTS', 'BRAKE FLUID', 'OTHERS', 'CLUTCH']


@pytest.mark.parametrize('raw', [
    SAMPLE_PAGE,
    'A S H I S H BHATTT',
    'Target2026BRAKEPARTS 40,00,000OTHERS25,00,000',
    'AM:X Y Z W@@Sales Office:North',
    'Over All OTHERS 70,00,000 BRAKE FLUID 5,00,000',
])
def test_normalization_is_idempotent(raw):
    once = normalize_document_text(raw)
    assert normalize_document_text(once) == once


@pytest.mark.parametrize('raw', [None, '', '   \n\t ', '@@@ ###'])
def test_empty_input_raises(raw):
    with pytest.raises(EmptyInputError):
        normalize_document_text(raw)


@pytest.mark.parametrize('value, expected', [
    ('70,00,000', 7000000),
    ('7,000,000', 7000000),
    ('7080858.00', 7080858),
    (' 500 000 ', 500000),
    ('N/A', None),
    ('', None),
])
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


def test_strip_thousands_separators():
    assert strip_thousands_separators('70,00,000') == '7000000'


def test_label_text_inside_upper_case_name_is_not_split():
    text = normalize_document_text('Customer:[S]-29870 - MEDICINE HOUSE\nCIN:U123')
    assert text.splitlines() == ['Customer:[S]-29870 - MEDICINE HOUSE', 'CIN:U 123']
    assert extract_fields(text).customer_name == 'MEDICINE HOUSE'


def test_bare_word_label_must_end_at_word_boundary():
    assert split_glued_labels('SPARESGroups') == 'SPARESGroups'
    assert split_glued_labels('AM:RAJ KUMARDated') == 'AM:RAJ KUMARDated'
    assert split_glued_labels('BRAKEGroup') == 'BRAKE\nGroup'
