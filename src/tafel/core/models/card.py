from django.conf import settings
from django.db import models

from tafel.core.options import CardOptions

from .base import VersionedModel


class Card(VersionedModel):
    """A single item on the board, ordered by its column's ``sequence``."""

    board = models.ForeignKey("Board", on_delete=models.CASCADE, related_name="cards")
    column = models.ForeignKey("Column", on_delete=models.CASCADE, related_name="cards")
    title = models.CharField(max_length=500, blank=True)
    description = models.TextField(blank=True)
    completed = models.BooleanField(default=False)
    discussion = models.BooleanField(default=False)
    options = models.JSONField(default=dict, blank=True)
    due_date = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_cards",
    )
    # Card this one was copied from, if any
    original_id = models.BigIntegerField(null=True, blank=True)
    assignees = models.ManyToManyField(
        settings.AUTH_USER_MODEL, blank=True, related_name="assigned_cards"
    )

    class Meta:
        ordering = ["board", "id"]

    def __str__(self):
        return self.title

    @property
    def card_options(self):
        return CardOptions.from_dict(self.options)

    @card_options.setter
    def card_options(self, value):
        self.options = value.to_dict()

    def can_edit(self, user):
        if user is None:
            return False
        if user.is_staff or user.pk == self.created_by_id:
            return True
        return self.assignees.filter(pk=user.pk).exists()
