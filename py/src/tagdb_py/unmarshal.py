from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import is_dataclass
from typing import Any

from .dispatch import CodecRegistry, default_registry
from .errors import DecodeError, ValueNotInstanceError, ValueNotRecordError
from .model import definition_for


def _check_target(target: Any) -> None:
    if target is None or isinstance(target, type):
        raise ValueNotInstanceError()
    if not is_dataclass(target):
        raise ValueNotRecordError()
    params = getattr(type(target), "__dataclass_params__", None)
    if params is not None and params.frozen:
        raise ValueNotInstanceError("tagdb: record instance is frozen")


def _single_entry(av: Any, attribute: str) -> tuple[str, Any]:
    if not isinstance(av, Mapping):
        raise DecodeError("attribute value must be a map", attribute=attribute)
    if len(av) != 1:
        raise DecodeError("attribute value must have exactly one type key", attribute=attribute)
    ((tag, raw),) = av.items()
    return tag, raw


def unmarshal[T](item: Mapping[str, Any], target: T, *, registry: CodecRegistry | None = None) -> T:
    """Decode an attribute map into the fields of ``target``.

    Attributes missing from ``item`` leave their fields untouched. Every
    present attribute is decoded before any field is assigned, so a decode
    failure leaves ``target`` exactly as it was.
    """
    _check_target(target)
    if not isinstance(item, Mapping):
        raise DecodeError("item must be a map of attribute values")

    registry = registry or default_registry
    decoded: dict[str, Any] = {}
    for rf in definition_for(target).fields:
        if rf.attribute_name not in item:
            continue

        tag, raw = _single_entry(item[rf.attribute_name], rf.attribute_name)
        codec = registry.codec_for(rf.annotation)
        if tag != codec.tag:
            raise DecodeError(f"expected type {codec.tag}, got {tag}", attribute=rf.attribute_name)
        try:
            decoded[rf.python_name] = codec.decode(raw)
        except DecodeError as err:
            if err.attribute is not None:
                raise
            raise type(err)(str(err), attribute=rf.attribute_name) from err

    for name, value in decoded.items():
        setattr(target, name, value)
    return target


def unmarshal_all[T](
    items: Iterable[Mapping[str, Any]], prototype: T, *, registry: CodecRegistry | None = None
) -> list[T]:
    _check_target(prototype)
    return [unmarshal(item, copy.deepcopy(prototype), registry=registry) for item in items]
