"""
Initial chat schema.

Tables:
    - chat_user: local cache of remote user directory records
    - chat_chat: chats with globally unique titles
    - chat_membership: (chat, user) join rows, unique per pair
"""

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ChatUser",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "user_id",
                    models.CharField(
                        help_text="User identity from the remote user directory",
                        max_length=64,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "name",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Display name cached from the user directory",
                        max_length=255,
                    ),
                ),
                (
                    "avatar",
                    models.URLField(
                        blank=True,
                        help_text="Avatar URL cached from the user directory",
                        max_length=500,
                        null=True,
                    ),
                ),
            ],
            options={
                "db_table": "chat_user",
                "ordering": ["user_id"],
            },
        ),
        migrations.CreateModel(
            name="Chat",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "title",
                    models.CharField(
                        help_text="Chat title, unique across all chats",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "room_id",
                    models.PositiveBigIntegerField(
                        db_index=True,
                        help_text="Identifier of the room in the room registry",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("archived", "Archived")],
                        db_index=True,
                        default="active",
                        help_text="Lifecycle status",
                        max_length=16,
                    ),
                ),
            ],
            options={
                "db_table": "chat_chat",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["room_id", "status"], name="chat_room_status_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChatMembership",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "joined_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        help_text="When the user joined this chat",
                    ),
                ),
                (
                    "chat",
                    models.ForeignKey(
                        help_text="Chat this membership belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="chat.chat",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Member user",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="memberships",
                        to="chat.chatuser",
                    ),
                ),
            ],
            options={
                "db_table": "chat_membership",
                "ordering": ["joined_at", "id"],
                "indexes": [
                    models.Index(fields=["user", "chat"], name="chat_member_user_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("chat", "user"), name="unique_chat_membership"
                    ),
                ],
            },
        ),
    ]
