from targets.services.field_extractor import (
    extract_fields,
    extract_product_targets,
    strip_customer_code,
)
from targets.services.normalizer import normalize_document_text

from .conftest import SAMPLE_PAGE


def test_extract_fields_from_sample_page():
    fields = extract_fields(normalize_document_text(SAMPLE_PAGE))

    assert fields.agent_name == 'ASHISH BHATT'
    assert fields.region == 'West'
    assert fields.sales_office == 'Ahmedabad'
    assert fields.customer_name == 'A M AUTO SALES'
    assert fields.product_targets == {
        'BRAKE PARTS': '4000000',
        'BRAKE FLUID': '500000',
        'OTHERS': '2500000',
    }


def test_agent_name_stops_at_label_keyword():
    fields = extract_fields('AM:ASHISH BHATT Contact:98250')
    assert fields.agent_name == 'ASHISH BHATT'


def test_missing_fields_are_none():
    fields = extract_fields('nothing useful here')
    assert fields.agent_name is None
    assert fields.customer_name is None
    assert fields.product_targets == {}


def test_strip_customer_code():
    assert strip_customer_code('[S]- 28661 - VOHRA DISTRIBUTORS') == 'VOHRA DISTRIBUTORS'
    assert strip_customer_code('[S]-29870 - A M AUTO SALES') == 'A M AUTO SALES'
    assert strip_customer_code('A M AUTO SALES') == 'A M AUTO SALES'


def test_last_number_on_row_is_the_target():
    targets = extract_product_targets('BRAKE PARTS 2025 35,00,000 40,00,000')
    assert targets == {'BRAKE PARTS': '4000000'}


def test_summary_row_is_not_an_others_row():
    targets = extract_product_targets('Over All OTHERS 70,00,000\nOTHERS 25,00,000')
    assert targets == {'OTHERS': '2500000'}


def test_product_keyword_must_match_whole_word():
    assert extract_product_targets('OTHERSIDE 500') == {}


def test_first_row_wins():
    targets = extract_product_targets('BRAKE PARTS 100\nBRAKE PARTS 200')
    assert targets == {'BRAKE PARTS': '100'}


def test_extra_product_labels():
    targets = extract_product_targets('CLUTCH PLATES 12,000', ['CLUTCH PLATES'])
    assert targets == {'CLUTCH PLATES': '12000'}


def test_to_dict():
    fields = extract_fields('AM:ASHISH BHATT')
    assert fields.to_dict()['agent_name'] == 'ASHISH BHATT'
