from django.db import models

from tafel.core.options import ColumnOptions

from .base import VersionedModel
from .fields import SequenceField


class Column(VersionedModel):
    board = models.ForeignKey("Board", on_delete=models.CASCADE, related_name="columns")
    title = models.CharField(max_length=200, blank=True)
    sequence = SequenceField()
    locked = models.BooleanField(default=False)
    options = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["board", "id"]

    def __str__(self):
        return f"{self.board.heading} - {self.title}"

    @property
    def column_options(self):
        return ColumnOptions.from_dict(self.options)

    @column_options.setter
    def column_options(self, value):
        self.options = value.to_dict()
