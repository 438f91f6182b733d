from django.conf import settings
from django.db import models

from .base import VersionedModel
from .fields import SequenceField


class Board(VersionedModel):
    """Container for columns, ordered by ``sequence``."""

    name = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    sequence = SequenceField()
    locked = models.BooleanField(default=False)
    template = models.BooleanField(default=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="personal_boards",
    )
    group_name = models.CharField(max_length=200, blank=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self):
        return self.heading

    @property
    def heading(self):
        if self.name:
            return self.name
        if self.user_id:
            return f"Board of {self.user.get_username()}"
        if self.group_name:
            return f"Board of {self.group_name}"
        return f"Board {self.pk}"
