"""
Signature detection.
Renders the first page of a PDF and asks a vision model whether it carries
a handwritten or digital signature.
"""

import base64
import io
import logging
from typing import Protocol

import pdfplumber
from openai import OpenAI, OpenAIError

from ..conf import get_setting
from ..exceptions import DocumentReadError, TransportError
from .verifier import build_openai_client

logger = logging.getLogger(__name__)

SIGNATURE_QUESTION = (
    "Is there a handwritten or digital signature in this document image? "
    "Reply only true or false."
)


class SignatureDetector(Protocol):
    def detect(self, pdf_bytes: bytes) -> bool:
        ...


def render_first_page_png(pdf_bytes: bytes, resolution: int = 150) -> bytes:
    """
    Render page 1 of a PDF as PNG bytes.

    Raises:
        DocumentReadError: if the PDF has no pages or cannot be rendered
    """
    try:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            if not pdf.pages:
                raise DocumentReadError("PDF has no pages to check for a signature")
            image = pdf.pages[0].to_image(resolution=resolution).original
            buffer = io.BytesIO()
            image.save(buffer, format='PNG')
    except DocumentReadError:
        raise
    except Exception as e:
        raise DocumentReadError(f"Could not render PDF page for signature detection: {e}") from e

    return buffer.getvalue()


class OpenAISignatureDetector:
    """Signature detector backed by an OpenAI vision model."""

    def __init__(self, client: OpenAI, model: str = 'gpt-4o-mini', resolution: int = 150):
        self.client = client
        self.model = model
        self.resolution = resolution

    def detect(self, pdf_bytes: bytes) -> bool:
        """
        Return True when the model answers "true" for the first page.

        Raises:
            DocumentReadError: if the page cannot be rendered
            TransportError: if the API call fails
        """
        image_b64 = base64.b64encode(render_first_page_png(pdf_bytes, self.resolution)).decode('ascii')

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[{
                    'role': 'user',
                    'content': [
                        {'type': 'text', 'text': SIGNATURE_QUESTION},
                        {'type': 'image_url', 'image_url': {'url': f'data:image/png;base64,{image_b64}'}},
                    ],
                }],
                temperature=0,
            )
        except OpenAIError as e:
            logger.error(f"Signature detection call failed ({self.model}): {e}")
            raise TransportError(f"Signature detection failed: {e}") from e

        answer = (completion.choices[0].message.content or '').strip().lower()
        logger.info(f"Signature detection response: {answer}")
        return answer == 'true'


def get_signature_detector() -> OpenAISignatureDetector:
    """Get a signature detector configured from settings."""
    return OpenAISignatureDetector(
        client=build_openai_client(),
        model=get_setting('SIGNATURE_MODEL'),
        resolution=get_setting('SIGNATURE_RENDER_RESOLUTION'),
    )
