"""Typed views on the free-form ``options`` JSON of columns and cards."""

from dataclasses import asdict, dataclass, field, fields


def _split(cls, data):
    known = {f.name for f in fields(cls)} - {"extra"}
    data = dict(data or {})
    values = {key: data.pop(key) for key in list(data) if key in known}
    return values, data


@dataclass
class ColumnOptions:
    # Cards moved into this column are marked completed
    autoclose: bool = False
    # Completed cards in this column are hidden by clients
    autohide: bool = False
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        values, extra = _split(cls, data)
        return cls(
            autoclose=bool(values.get("autoclose", False)),
            autohide=bool(values.get("autohide", False)),
            extra=extra,
        )

    def to_dict(self):
        result = asdict(self)
        result.update(result.pop("extra"))
        return result


@dataclass
class CardOptions:
    background: str | None = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        values, extra = _split(cls, data)
        return cls(background=values.get("background") or None, extra=extra)

    def to_dict(self):
        result = asdict(self)
        extra = result.pop("extra")
        if result["background"] is None:
            del result["background"]
        result.update(extra)
        return result
