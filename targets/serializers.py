from rest_framework import serializers

from .services.normalizer import parse_amount
from .services.reconciliation import ExpectedRecord, ProductTarget


class ProductTargetSerializer(serializers.Serializer):
    product = serializers.CharField()
    target2026 = serializers.CharField()

    def validate_product(self, value):
        value = ' '.join(value.split())
        if not value:
            raise serializers.ValidationError('Product label cannot be blank.')
        return value

    def validate_target2026(self, value):
        amount = parse_amount(value)
        if amount is None:
            raise serializers.ValidationError(f'"{value}" is not a whole-number target.')
        return amount


class ExpectedRecordSerializer(serializers.Serializer):
    amName = serializers.CharField()
    customerName = serializers.CharField()
    targets = serializers.JSONField(required=False, default=list)
    signatureRequired = serializers.BooleanField(required=False, default=False)

    def validate_targets(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Expected a list of {product, target2026} objects.')
        targets = ProductTargetSerializer(data=value, many=True)
        targets.is_valid(raise_exception=True)
        return targets.validated_data

    def to_expected_record(self) -> ExpectedRecord:
        data = self.validated_data
        return ExpectedRecord(
            agent_name=data['amName'].strip(),
            customer_name=data['customerName'].strip(),
            targets=tuple(
                ProductTarget(product=t['product'], target_amount=t['target2026'])
                for t in data['targets']
            ),
            signature_required=data['signatureRequired'],
        )


class ValidationUploadSerializer(ExpectedRecordSerializer):
    file = serializers.FileField(allow_empty_file=False)

    def validate_file(self, value):
        if not value.name.lower().endswith('.pdf'):
            raise serializers.ValidationError('Only PDF files are accepted.')
        return value


class PreviewSerializer(serializers.Serializer):
    file = serializers.FileField(allow_empty_file=False)


class ValidationMismatchSerializer(serializers.Serializer):
    field = serializers.CharField()
    expectedValue = serializers.CharField(source='expected_value', allow_blank=True)
    pdfValue = serializers.CharField(source='observed_value', allow_blank=True)
    reason = serializers.CharField(allow_blank=True)


class ValidationResultSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    isValid = serializers.BooleanField(source='valid')
    message = serializers.CharField()
    mismatches = ValidationMismatchSerializer(many=True)


class ExtractedFieldSetSerializer(serializers.Serializer):
    agentName = serializers.CharField(source='agent_name', allow_null=True)
    region = serializers.CharField(allow_null=True)
    customerName = serializers.CharField(source='customer_name', allow_null=True)
    salesOffice = serializers.CharField(source='sales_office', allow_null=True)
    productTargets = serializers.DictField(source='product_targets', child=serializers.CharField())
