from django.db import models

from tafel.core import sequence


class SequenceField(models.TextField):
    """Stores an ordered list of ids as comma separated text."""

    description = "Ordered list of ids"

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("default", list)
        kwargs.setdefault("blank", True)
        kwargs.setdefault("editable", False)
        super().__init__(*args, **kwargs)

    def from_db_value(self, value, expression, connection):
        return sequence.decode(value)

    def to_python(self, value):
        return sequence.decode(value)

    def get_prep_value(self, value):
        if isinstance(value, str):
            return value
        return sequence.encode(value or [])

    def value_to_string(self, obj):
        return self.get_prep_value(self.value_from_object(obj))
