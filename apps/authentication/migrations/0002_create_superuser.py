from decouple import config
from django.contrib.auth.hashers import make_password
from django.db import migrations


def create_initial_admin(apps, schema_editor):
    """Seed one admin account from DJANGO_SUPERUSER_* when a password is configured"""
    User = apps.get_model("authentication", "User")

    password = config("DJANGO_SUPERUSER_PASSWORD", default="")
    if not password:
        return

    email = config("DJANGO_SUPERUSER_EMAIL", default="admin@example.com").strip().lower()

    User.objects.get_or_create(
        email=email,
        defaults={
            "password": make_password(password),
            "first_name": config("DJANGO_SUPERUSER_FIRST_NAME", default="System"),
            "last_name": config("DJANGO_SUPERUSER_LAST_NAME", default="Admin"),
            "role": "admin",
            "is_staff": True,
            "is_superuser": True,
        },
    )


class Migration(migrations.Migration):

    dependencies = [
        ("authentication", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_initial_admin, migrations.RunPython.noop),
    ]
