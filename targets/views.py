import logging

from django.core.exceptions import ImproperlyConfigured
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from .conf import get_setting
from .exceptions import DocumentReadError, EmptyInputError, TransportError
from .serializers import (
    ExtractedFieldSetSerializer,
    PreviewSerializer,
    ValidationResultSerializer,
    ValidationUploadSerializer,
)
from .services.reconciliation import ValidationResult
from .services.signature import get_signature_detector
from .services.text_extractor import compute_sha256, extract_text_with_pages
from .services.verifier import get_verifier
from .validation import EMPTY_DOCUMENT_MESSAGE, prepare_document, product_labels_for, validate_document

logger = logging.getLogger(__name__)


class ValidationViewSet(viewsets.ViewSet):
    parser_classes = (MultiPartParser, FormParser)

    @action(detail=False, methods=['post'])
    def upload(self, request):
        """
        Validate an uploaded sales target PDF against the expected values.
        Answers with {success, isValid, message, mismatches}.
        """
        serializer = ValidationUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        expected = serializer.to_expected_record()
        upload = serializer.validated_data['file']

        try:
            verifier = get_verifier()
            detector = get_signature_detector() if expected.signature_required else None
        except ImproperlyConfigured as e:
            logger.error(f"Validation services are not configured: {e}")
            return Response(
                {'error': 'Validation service is not configured'},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )

        try:
            result = validate_document(
                upload,
                upload.name,
                expected,
                verifier,
                signature_detector=detector,
            )
        except DocumentReadError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except TransportError as e:
            failure = ValidationResult.failure(str(e))
            return Response(ValidationResultSerializer(failure).data, status=status.HTTP_502_BAD_GATEWAY)

        return Response(ValidationResultSerializer(result).data)

    @action(detail=False, methods=['post'])
    def preview(self, request):
        """
        Show what the pipeline reads from a PDF before any verifier call.
        Useful for diagnosing extraction problems.
        """
        serializer = PreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data['file']

        file_hash = compute_sha256(upload)
        try:
            pages = extract_text_with_pages(upload, use_ocr_fallback=get_setting('USE_OCR_FALLBACK'))
            prepared = prepare_document([page.text for page in pages], product_labels_for())
        except DocumentReadError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except EmptyInputError:
            return Response({'error': EMPTY_DOCUMENT_MESSAGE}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'fileHash': file_hash,
            'pageCount': len(pages),
            'normalizedText': prepared.normalized_text,
            'fields': ExtractedFieldSetSerializer(prepared.fields).data,
        })
