import argparse
import json

from django.core.management.base import BaseCommand, CommandError

from targets.exceptions import DocumentReadError, TransportError
from targets.serializers import ExpectedRecordSerializer, ValidationResultSerializer
from targets.services.signature import get_signature_detector
from targets.services.verifier import get_verifier
from targets.validation import validate_document


class Command(BaseCommand):
    help = 'Validate a sales target PDF against an expected record and print the result as JSON.'

    def add_arguments(self, parser):
        parser.add_argument('pdf_path', help='Path to the PDF to validate')
        parser.add_argument(
            '--expected',
            required=True,
            help='JSON file with amName, customerName, targets and signatureRequired',
        )
        parser.add_argument(
            '--signature-detected',
            action=argparse.BooleanOptionalAction,
            default=None,
            help='Skip signature detection and use this outcome instead',
        )

    def handle(self, *args, **options):
        try:
            with open(options['expected'], encoding='utf-8') as f:
                record = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CommandError(f"Could not read expected record: {e}")

        serializer = ExpectedRecordSerializer(data=record)
        if not serializer.is_valid():
            raise CommandError(f"Invalid expected record: {json.dumps(serializer.errors)}")
        expected = serializer.to_expected_record()

        signature_detected = options['signature_detected']
        detector = None
        if expected.signature_required and signature_detected is None:
            detector = get_signature_detector()

        try:
            with open(options['pdf_path'], 'rb') as pdf:
                result = validate_document(
                    pdf,
                    options['pdf_path'],
                    expected,
                    get_verifier(),
                    signature_detector=detector,
                    signature_detected=signature_detected,
                )
        except OSError as e:
            raise CommandError(f"Could not open PDF: {e}")
        except (DocumentReadError, TransportError) as e:
            raise CommandError(str(e))

        self.stdout.write(json.dumps(ValidationResultSerializer(result).data, indent=2))
