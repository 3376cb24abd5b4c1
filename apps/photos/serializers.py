from django.conf import settings
from rest_framework import serializers


class ImageUploadRequestSerializer(serializers.Serializer):
    """
    Serializer for requesting signed upload parameters
    """

    order_id = serializers.CharField(max_length=64)


class ImageConfirmUploadSerializer(serializers.Serializer):
    """
    Serializer for confirming an image upload
    """

    order_id = serializers.CharField(max_length=64)
    public_id = serializers.CharField(max_length=500)
    # informational; the stored URL comes from Cloudinary
    url = serializers.RegexField(r"^https?://.+", max_length=1000, required=False)
    file_size = serializers.IntegerField()
    width = serializers.IntegerField(required=False, allow_null=True)
    height = serializers.IntegerField(required=False, allow_null=True)

    def validate_file_size(self, value):
        """Ensure file size is within limits"""
        if value <= 0:
            raise serializers.ValidationError("File size must be greater than 0")

        max_size = settings.WORK_ORDERS["MAX_IMAGE_BYTES"]
        if value > max_size:
            raise serializers.ValidationError(f"File size cannot exceed {max_size / (1024 * 1024):g}MB")
        return value
