from django.conf import settings
from rest_framework import serializers

from .models import HAZARD_FLAGS, SORT_FIELDS, Order

STATUS_VALUES = [value for value, _ in Order.STATUS_CHOICES]
PRIORITY_VALUES = [value for value, _ in Order.PRIORITY_CHOICES]

IMAGE_URL_REGEX = r"^https?://.+"


class WorkflowEntrySerializer(serializers.Serializer):
    action = serializers.CharField()
    performed_by = serializers.CharField()
    timestamp = serializers.CharField()
    comments = serializers.CharField(allow_blank=True)
    previous_status = serializers.CharField(allow_null=True)
    new_status = serializers.CharField(allow_null=True)


class OrderSerializer(serializers.ModelSerializer):
    """Full work order representation"""

    id = serializers.UUIDField(source="internal_id", read_only=True)
    workflow_history = WorkflowEntrySerializer(many=True, read_only=True)
    days_since_creation = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "internal_id",
            "unique_id",
            "work_order_id",
            "user_id",
            "created_by",
            "last_modified_by",
            "assigned_to",
            "assigned_date",
            "technician",
            "priority",
            "status",
            "survey_date",
            "space_name",
            "building",
            "location_description",
            "confined_space_description",
            *HAZARD_FLAGS,
            "is_space_normally_locked",
            "entry_requirements",
            "atmospheric_hazard_description",
            "engulfment_hazard_description",
            "configuration_hazard_description",
            "other_hazards_description",
            "ppe_list",
            "number_of_entry_points",
            "notes",
            "image_urls",
            "tags",
            "completed_date",
            "approved_by",
            "approved_date",
            "workflow_history",
            "days_since_creation",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderSummarySerializer(serializers.ModelSerializer):
    """Compact representation for stats and import reports"""

    id = serializers.UUIDField(source="internal_id", read_only=True)

    class Meta:
        model = Order
        fields = ["id", "unique_id", "work_order_id", "status", "priority", "survey_date", "space_name", "building", "technician"]
        read_only_fields = fields


class OrderWriteSerializer(serializers.ModelSerializer):
    """
    Validates create payloads and partial updates

    Hazard flags must already be normalized (missing/null -> False) by the service
    """

    image_urls = serializers.ListField(
        child=serializers.RegexField(IMAGE_URL_REGEX, max_length=2000, error_messages={"invalid": "Invalid image URL format"}),
        required=False,
    )
    tags = serializers.ListField(child=serializers.CharField(max_length=30, trim_whitespace=True), required=False, max_length=10)

    class Meta:
        model = Order
        fields = [
            "technician",
            "priority",
            "status",
            "survey_date",
            "space_name",
            "building",
            "location_description",
            "confined_space_description",
            *HAZARD_FLAGS,
            "is_space_normally_locked",
            "entry_requirements",
            "atmospheric_hazard_description",
            "engulfment_hazard_description",
            "configuration_hazard_description",
            "other_hazards_description",
            "ppe_list",
            "number_of_entry_points",
            "notes",
            "image_urls",
            "tags",
            "assigned_to",
        ]
        extra_kwargs = {
            "technician": {"required": True, "allow_blank": False},
            "space_name": {"required": True, "allow_blank": False},
            "building": {"allow_blank": False},
            "location_description": {"allow_blank": False},
        }

    def validate_image_urls(self, value):
        limit = settings.WORK_ORDERS["MAX_IMAGES_PER_ORDER"]
        if len(value) > limit:
            raise serializers.ValidationError(f"Cannot have more than {limit} images")
        return value


class OrderQuerySerializer(serializers.Serializer):
    """Query parameters accepted by the order list"""

    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=STATUS_VALUES, required=False)
    priority = serializers.ChoiceField(choices=PRIORITY_VALUES, required=False)
    search = serializers.CharField(max_length=100, required=False, allow_blank=True)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    sort_by = serializers.ChoiceField(choices=sorted(SORT_FIELDS), default="created_at")
    sort_order = serializers.ChoiceField(choices=["asc", "desc"], default="desc")

    def validate_limit(self, value):
        max_page_size = settings.WORK_ORDERS["MAX_PAGE_SIZE"]
        if value > max_page_size:
            raise serializers.ValidationError(f"Limit must be between 1 and {max_page_size}")
        return value

    def validate(self, attrs):
        date_from, date_to = attrs.get("date_from"), attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_to": "Date to must not be before date from"})
        return attrs


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_VALUES)
    comments = serializers.CharField(max_length=500, required=False, allow_blank=True)


class BulkStatusUpdateSerializer(StatusUpdateSerializer):
    order_ids = serializers.ListField(child=serializers.CharField(max_length=64), allow_empty=False)

    def validate_order_ids(self, value):
        limit = settings.WORK_ORDERS["MAX_BULK_IDS"]
        if len(value) > limit:
            raise serializers.ValidationError(f"Order IDs must be an array with 1-{limit} items")
        return value


class BulkImportSerializer(serializers.Serializer):
    csv_data = serializers.ListField(child=serializers.DictField(), allow_empty=False)

    def validate_csv_data(self, value):
        limit = settings.WORK_ORDERS["MAX_IMPORT_ROWS"]
        if len(value) > limit:
            raise serializers.ValidationError(f"Maximum {limit} rows per import")
        return value


class DeleteAllSerializer(serializers.Serializer):
    confirm_phrase = serializers.CharField(required=False, allow_blank=True, default="")
