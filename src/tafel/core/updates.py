import json
import re
from dataclasses import is_dataclass

import nh3
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.html import strip_tags

from tafel.core import sequence

TEXT_FIELDS = {"title", "content", "fullname", "heading", "name", "columnname"}
HTML_FIELDS = {"description"}
INT_RE = re.compile(r"^-?\d+$")
FLOAT_RE = re.compile(r"^-?\d+\.\d+$")


def clean_html(value):
    """Reduce rich text to an allow-list of tags, attributes and URL schemes."""
    return nh3.clean(value)


def coerce(value):
    if isinstance(value, str):
        if INT_RE.match(value):
            return int(value)
        if FLOAT_RE.match(value):
            return float(value)
    return value


class UpdateFormatter:
    """Collects the patches caused by one request, in emission order.

    Clients apply patches in the order they were emitted, so a later patch to
    the same entity wins over an earlier one.
    """

    def __init__(self):
        self.updates = []

    def __len__(self):
        return len(self.updates)

    def __iter__(self):
        return iter(self.formatted())

    def _add(self, name, action, fields):
        if "id" not in fields:
            raise ValueError(f"Patch for {name} is missing an id")
        self.updates.append({"name": name, "action": action, "fields": dict(fields)})

    def put(self, name, fields):
        self._add(name, "put", fields)

    def create(self, name, fields):
        self._add(name, "create", fields)

    def delete(self, name, fields):
        self._add(name, "delete", {"id": fields["id"]} if "id" in fields else fields)

    def mark(self):
        return len(self.updates)

    def rollback(self, mark):
        del self.updates[mark:]

    def formatted(self):
        return [
            {
                "name": update["name"],
                "action": update["action"],
                "fields": self.format_fields(update["fields"]),
            }
            for update in self.updates
        ]

    def format_fields(self, fields):
        result = {}
        for key, value in fields.items():
            result[key] = self.format_value(key, value)
        return result

    def format_value(self, key, value):
        if value is None or isinstance(value, bool):
            return value
        if key == "sequence":
            return sequence.encode(sequence.decode(value))
        if is_dataclass(value):
            return value.to_dict()
        if key in TEXT_FIELDS and isinstance(value, str):
            return strip_tags(value)
        if key in HTML_FIELDS and isinstance(value, str):
            return clean_html(value)
        if isinstance(value, str):
            return coerce(value)
        if isinstance(value, (list, tuple)):
            return [coerce(item) for item in value]
        return value

    def to_json(self):
        return json.dumps(self.formatted(), cls=DjangoJSONEncoder)
