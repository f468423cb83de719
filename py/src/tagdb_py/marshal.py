from __future__ import annotations

from dataclasses import is_dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from .dispatch import CodecRegistry, default_registry
from .errors import EncodeError, ValueNotRecordError
from .model import definition_for

type AttributeValue = dict[str, dict[str, Any]]


def is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) == datetime.min
    if isinstance(value, (int, float, Decimal)):
        return value == 0
    if isinstance(value, (str, bytes, bytearray, list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def marshal(record: Any, keys_only: bool = False, *, registry: CodecRegistry | None = None) -> AttributeValue:
    if isinstance(record, type) or not is_dataclass(record):
        raise ValueNotRecordError()

    registry = registry or default_registry
    values: AttributeValue = {}
    for rf in definition_for(record).fields:
        value = getattr(record, rf.python_name)
        if is_empty(value):
            continue
        if keys_only and not rf.is_key:
            continue
        codec = registry.codec_for(rf.annotation)
        try:
            encoded = codec.encode(value)
        except EncodeError as err:
            raise EncodeError(f"{rf.attribute_name}: {err}") from err
        values[rf.attribute_name] = {codec.tag: encoded}
    return values


def marshal_keys(record: Any, *, registry: CodecRegistry | None = None) -> AttributeValue:
    return marshal(record, True, registry=registry)
