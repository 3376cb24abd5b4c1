import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

# Required hazard/safety assessments; missing or null inputs are stored as False
HAZARD_FLAGS = (
    "is_confined_space",
    "permit_required",
    "atmospheric_hazard",
    "engulfment_hazard",
    "configuration_hazard",
    "other_recognized_hazards",
    "ppe_required",
    "forced_air_ventilation_sufficient",
    "dedicated_air_monitor",
    "warning_sign_posted",
    "other_people_working_near_space",
    "can_others_see_into_space",
    "contractors_enter_space",
)

# Fields the order list may be sorted by
SORT_FIELDS = frozenset({"created_at", "updated_at", "survey_date", "priority", "status", "building", "work_order_id"})


class Counter(models.Model):
    """One monotonically increasing sequence per key"""

    key = models.CharField(primary_key=True, max_length=64)
    seq = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "counters"

    def __str__(self):
        return f"{self.key}={self.seq}"


class Order(models.Model):
    PRIORITY_CHOICES = (
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
        ("critical", "Critical"),
    )

    STATUS_CHOICES = (
        ("draft", "Draft"),
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("in-progress", "In Progress"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
        ("on-hold", "On Hold"),
    )

    # identity; assigned once and never regenerated
    internal_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    unique_id = models.CharField(max_length=20, unique=True, null=True, blank=True, editable=False)
    work_order_id = models.CharField(max_length=32, unique=True, null=True, blank=True, editable=False)

    # ownership
    user_id = models.CharField(max_length=64, db_index=True)
    created_by = models.CharField(max_length=64)
    last_modified_by = models.CharField(max_length=64, blank=True, default="")
    assigned_to = models.CharField(max_length=64, blank=True, default="", db_index=True)
    assigned_date = models.DateTimeField(null=True, blank=True)
    technician = models.CharField(max_length=100, default="Unassigned", db_index=True)

    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium", db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="draft", db_index=True)

    # survey information
    survey_date = models.DateField(db_index=True)
    space_name = models.CharField(max_length=100, default="N/A")
    building = models.CharField(max_length=50)
    location_description = models.CharField(max_length=500)
    confined_space_description = models.TextField(max_length=1000, blank=True, default="")

    # space classification
    is_confined_space = models.BooleanField()
    permit_required = models.BooleanField()
    entry_requirements = models.TextField(max_length=1000, blank=True, default="")

    # hazard assessment
    atmospheric_hazard = models.BooleanField()
    atmospheric_hazard_description = models.CharField(max_length=500, blank=True, default="")
    engulfment_hazard = models.BooleanField()
    engulfment_hazard_description = models.CharField(max_length=500, blank=True, default="")
    configuration_hazard = models.BooleanField()
    configuration_hazard_description = models.CharField(max_length=500, blank=True, default="")
    other_recognized_hazards = models.BooleanField()
    other_hazards_description = models.CharField(max_length=500, blank=True, default="")

    # safety requirements
    ppe_required = models.BooleanField()
    ppe_list = models.TextField(max_length=1000, blank=True, default="")
    forced_air_ventilation_sufficient = models.BooleanField()
    dedicated_air_monitor = models.BooleanField()
    warning_sign_posted = models.BooleanField()

    # entry and personnel
    number_of_entry_points = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(0), MaxValueValidator(20)]
    )
    other_people_working_near_space = models.BooleanField()
    can_others_see_into_space = models.BooleanField()
    contractors_enter_space = models.BooleanField()
    is_space_normally_locked = models.BooleanField(default=False)

    notes = models.TextField(max_length=2000, blank=True, default="")
    image_urls = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)

    # workflow
    completed_date = models.DateTimeField(null=True, blank=True)
    approved_by = models.CharField(max_length=64, blank=True, default="")
    approved_date = models.DateTimeField(null=True, blank=True)
    workflow_history = models.JSONField(default=list, blank=True, editable=False)

    # timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["survey_date", "building"], name="orders_survey__0c5b1e_idx"),
            models.Index(fields=["created_at"], name="orders_created_3f9a2d_idx"),
            models.Index(fields=["space_name"], name="orders_space_n_7e41c8_idx"),
        ]

    def __str__(self):
        return self.work_order_id or str(self.internal_id)

    def save(self, *args, **kwargs):
        from .services.counters import assign_identifiers

        assign_identifiers(self)

        if self.assigned_to and not self.assigned_date:
            self.assigned_date = timezone.now()

        super().save(*args, **kwargs)

    def append_workflow_entry(self, action, performed_by, comments="", previous_status=None, new_status=None):
        """
        Append one audit entry; the caller is responsible for saving

        Entries are never edited or removed once appended
        """
        entry = {
            "action": action,
            "performed_by": str(performed_by),
            "timestamp": timezone.now().isoformat(),
            "comments": (comments or "")[:500],
            "previous_status": previous_status,
            "new_status": new_status,
        }
        self.workflow_history = [*(self.workflow_history or []), entry]
        return entry

    @property
    def days_since_creation(self):
        if not self.created_at:
            return 0
        return (timezone.now() - self.created_at).days
