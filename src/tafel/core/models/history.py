from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from .base import now_timestamp


class HistoryEntry(models.Model):
    """Audit record of a single change on a board."""

    TYPES = [
        ("board", "Board"),
        ("column", "Column"),
        ("card", "Card"),
        ("discussion", "Discussion"),
    ]

    board = models.ForeignKey("Board", on_delete=models.CASCADE, related_name="history")
    # Plain ids: the history outlives deleted columns and cards
    column_id = models.BigIntegerField(null=True, blank=True)
    card_id = models.BigIntegerField(null=True, blank=True)
    user_id = models.BigIntegerField(null=True, blank=True)
    affected_user_id = models.BigIntegerField(null=True, blank=True)
    action = models.CharField(max_length=100)
    type = models.CharField(max_length=20, choices=TYPES)
    parameters = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    timestamp = models.BigIntegerField(default=now_timestamp, db_index=True)

    class Meta:
        ordering = ["timestamp", "id"]
        verbose_name_plural = "history entries"

    def __str__(self):
        return f"{self.type} {self.action}"
