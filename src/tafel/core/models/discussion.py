from django.conf import settings
from django.db import models

from .base import TafelModel, now_timestamp


class DiscussionMessage(TafelModel):
    card = models.ForeignKey("Card", on_delete=models.CASCADE, related_name="messages")
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="discussion_messages",
    )
    content = models.TextField()
    timecreated = models.BigIntegerField(default=now_timestamp, db_index=True)

    class Meta:
        ordering = ["timecreated", "id"]

    def __str__(self):
        return self.content[:50]
