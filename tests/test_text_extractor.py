import hashlib
import io

import pytest
from PIL import Image

from targets.exceptions import DocumentReadError
from targets.services.text_extractor import PageText, compute_sha256, extract_text_with_pages, prepare_for_ocr


def test_compute_sha256_rewinds():
    file_obj = io.BytesIO(b'%PDF-1.4 sample')
    assert compute_sha256(file_obj) == hashlib.sha256(b'%PDF-1.4 sample').hexdigest()
    assert file_obj.tell() == 0


def test_unreadable_file_raises():
    with pytest.raises(DocumentReadError):
        extract_text_with_pages(io.BytesIO(b'this is not a pdf'), use_ocr_fallback=False)


def test_page_text_str():
    page = PageText(page_number=2, text='abc', extraction_method='ocr', has_content=True)
    assert str(page) == 'Page 2: 3 chars (ocr)'


def test_pages_are_grayscaled_for_ocr():
    image = Image.new('RGB', (4, 4), 'white')
    assert prepare_for_ocr(image).mode == 'L'
    assert image.mode == 'RGB'
