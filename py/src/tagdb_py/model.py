from __future__ import annotations

import threading
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from typing import Any, cast, get_type_hints, overload

from .errors import ValueNotRecordError
from .tags import FieldTag

TAG_KEY = "dynamo"


@dataclass(frozen=True)
class RecordField:
    python_name: str
    attribute_name: str
    tag: FieldTag
    annotation: Any

    @property
    def is_key(self) -> bool:
        return self.tag.is_key


@dataclass(frozen=True)
class RecordDefinition[T]:
    record_type: type[T]
    fields: tuple[RecordField, ...]

    @property
    def key_fields(self) -> tuple[RecordField, ...]:
        return tuple(f for f in self.fields if f.is_key)

    @classmethod
    def from_type(cls, record_type: type[T]) -> RecordDefinition[T]:
        if not isinstance(record_type, type) or not is_dataclass(record_type):
            raise ValueNotRecordError()

        try:
            hints = get_type_hints(record_type, include_extras=True)
        except Exception:
            hints = getattr(record_type, "__annotations__", {})

        resolved: list[RecordField] = []
        for dc_field in fields(record_type):
            if dc_field.name.startswith("_"):
                continue
            tag = FieldTag.parse(cast(str | None, dc_field.metadata.get(TAG_KEY)))
            if tag.excluded:
                continue
            resolved.append(
                RecordField(
                    python_name=dc_field.name,
                    attribute_name=tag.attribute_name(dc_field.name),
                    tag=tag,
                    annotation=hints.get(dc_field.name, Any),
                )
            )
        return cls(record_type=record_type, fields=tuple(resolved))


_definitions: dict[type, RecordDefinition[Any]] = {}
_definitions_lock = threading.Lock()


def definition_for(record: Any) -> RecordDefinition[Any]:
    record_type = record if isinstance(record, type) else type(record)
    cached = _definitions.get(record_type)
    if cached is not None:
        return cached

    definition = RecordDefinition.from_type(record_type)
    with _definitions_lock:
        return _definitions.setdefault(record_type, definition)


@overload
def dynamo_field(tag: str = "") -> Any: ...


@overload
def dynamo_field(tag: str = "", *, default: Any) -> Any: ...


@overload
def dynamo_field(tag: str = "", *, default_factory: Any) -> Any: ...


def dynamo_field(
    tag: str = "",
    *,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    """Declare a dataclass field carrying a ``name,opt1,opt2`` attribute tag.

    ``"-"`` excludes the field, a leading name overrides the attribute name and
    the ``hash``/``range`` options mark the table's key fields::

        title: str = dynamo_field("title,hash")
        year: int = dynamo_field("year,range")
        cache: str = dynamo_field("-", default="")
    """
    if default is not MISSING and default_factory is not MISSING:
        raise ValueError("dynamo_field: cannot set both default and default_factory")

    return field(default=default, default_factory=default_factory, metadata={TAG_KEY: tag})
