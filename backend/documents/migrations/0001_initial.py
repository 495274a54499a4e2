import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("folders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Document",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=255)),
                ("name", models.CharField(max_length=512)),
                ("type", models.CharField(blank=True, default="", max_length=255)),
                ("size", models.BigIntegerField(default=0)),
                ("content", models.TextField(blank=True, default="")),
                ("parsed_content", models.JSONField(blank=True, null=True)),
                ("file_path", models.CharField(blank=True, default="", max_length=1024)),
                ("category", models.CharField(blank=True, default="", max_length=255)),
                (
                    "index_status",
                    models.CharField(
                        choices=[
                            ("none", "none"),
                            ("queued", "queued"),
                            ("parsing", "parsing"),
                            ("chunking", "chunking"),
                            ("embedding", "embedding"),
                            ("uploading", "uploading"),
                            ("complete", "complete"),
                            ("error", "error"),
                        ],
                        default="none",
                        max_length=32,
                    ),
                ),
                ("index_progress", models.IntegerField(default=0)),
                ("index_message", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "folder",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="documents",
                        to="folders.folder",
                    ),
                ),
            ],
            options={"ordering": ("-created_at",)},
        ),
    ]
