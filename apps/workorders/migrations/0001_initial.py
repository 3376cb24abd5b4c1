import uuid

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Counter",
            fields=[
                ("key", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("seq", models.PositiveBigIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "counters",
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("internal_id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("unique_id", models.CharField(blank=True, editable=False, max_length=20, null=True, unique=True)),
                ("work_order_id", models.CharField(blank=True, editable=False, max_length=32, null=True, unique=True)),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("created_by", models.CharField(max_length=64)),
                ("last_modified_by", models.CharField(blank=True, default="", max_length=64)),
                ("assigned_to", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("assigned_date", models.DateTimeField(blank=True, null=True)),
                ("technician", models.CharField(db_index=True, default="Unassigned", max_length=100)),
                (
                    "priority",
                    models.CharField(
                        choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("critical", "Critical")],
                        db_index=True,
                        default="medium",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("in-progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("on-hold", "On Hold"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("survey_date", models.DateField(db_index=True)),
                ("space_name", models.CharField(default="N/A", max_length=100)),
                ("building", models.CharField(max_length=50)),
                ("location_description", models.CharField(max_length=500)),
                ("confined_space_description", models.TextField(blank=True, default="", max_length=1000)),
                ("is_confined_space", models.BooleanField()),
                ("permit_required", models.BooleanField()),
                ("entry_requirements", models.TextField(blank=True, default="", max_length=1000)),
                ("atmospheric_hazard", models.BooleanField()),
                ("atmospheric_hazard_description", models.CharField(blank=True, default="", max_length=500)),
                ("engulfment_hazard", models.BooleanField()),
                ("engulfment_hazard_description", models.CharField(blank=True, default="", max_length=500)),
                ("configuration_hazard", models.BooleanField()),
                ("configuration_hazard_description", models.CharField(blank=True, default="", max_length=500)),
                ("other_recognized_hazards", models.BooleanField()),
                ("other_hazards_description", models.CharField(blank=True, default="", max_length=500)),
                ("ppe_required", models.BooleanField()),
                ("ppe_list", models.TextField(blank=True, default="", max_length=1000)),
                ("forced_air_ventilation_sufficient", models.BooleanField()),
                ("dedicated_air_monitor", models.BooleanField()),
                ("warning_sign_posted", models.BooleanField()),
                (
                    "number_of_entry_points",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(20),
                        ],
                    ),
                ),
                ("other_people_working_near_space", models.BooleanField()),
                ("can_others_see_into_space", models.BooleanField()),
                ("contractors_enter_space", models.BooleanField()),
                ("is_space_normally_locked", models.BooleanField(default=False)),
                ("notes", models.TextField(blank=True, default="", max_length=2000)),
                ("image_urls", models.JSONField(blank=True, default=list)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("completed_date", models.DateTimeField(blank=True, null=True)),
                ("approved_by", models.CharField(blank=True, default="", max_length=64)),
                ("approved_date", models.DateTimeField(blank=True, null=True)),
                ("workflow_history", models.JSONField(blank=True, default=list, editable=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["survey_date", "building"], name="orders_survey__0c5b1e_idx"),
                    models.Index(fields=["created_at"], name="orders_created_3f9a2d_idx"),
                    models.Index(fields=["space_name"], name="orders_space_n_7e41c8_idx"),
                ],
            },
        ),
    ]
