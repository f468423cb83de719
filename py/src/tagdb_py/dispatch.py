from __future__ import annotations

import logging
import threading
import types
import uuid
from collections.abc import Callable
from dataclasses import is_dataclass
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Union, get_args, get_origin

from .codecs import ArrayCodec, Codec, ScalarCodec, ScalarKind, TextCodec, text_codec_for_class
from .errors import UnsupportedTypeError

logger = logging.getLogger(__name__)

_ARRAY_ORIGINS: dict[Any, type] = {list: list, tuple: tuple, set: set, frozenset: frozenset}


def unwrap_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is not Union and origin is not types.UnionType:
        return annotation
    args = get_args(annotation)
    non_none = [a for a in args if a is not type(None)]  # noqa: E721
    if len(args) == 2 and len(non_none) == 1:
        return non_none[0]
    return annotation


class CodecRegistry:
    def __init__(self) -> None:
        self._text: dict[type, TextCodec] = {}
        self._cache: dict[Any, Codec] = {}
        self._generation = 0
        self._lock = threading.Lock()

    def register_text_codec(
        self,
        python_type: type,
        to_text: Callable[[Any], str | bytes],
        from_text: Callable[[str], Any],
    ) -> None:
        codec = TextCodec(python_type=python_type, to_text=to_text, from_text=from_text)
        with self._lock:
            self._text[python_type] = codec
            self._cache.clear()
            self._generation += 1

    def codec_for(self, annotation: Any) -> Codec:
        cached = self._cache.get(annotation)
        if cached is not None:
            return cached

        with self._lock:
            text_codecs = tuple(self._text.items())
            generation = self._generation

        codec = self._resolve(annotation, text_codecs)
        logger.debug("resolved codec for %r: %r", annotation, codec)
        with self._lock:
            # A registration during resolve makes this codec stale.
            if generation != self._generation:
                return codec
            return self._cache.setdefault(annotation, codec)

    def scalar_kind_for(self, annotation: Any) -> ScalarKind:
        codec = self.codec_for(annotation)
        if isinstance(codec, ArrayCodec):
            raise UnsupportedTypeError(annotation, reason="is not a scalar type")
        return codec.kind

    def _resolve(self, annotation: Any, text_codecs: tuple[tuple[type, TextCodec], ...]) -> Codec:
        target = unwrap_optional(annotation)

        scalar = _resolve_scalar(target, text_codecs)
        if scalar is not None:
            return scalar

        origin = get_origin(target)
        container = _ARRAY_ORIGINS.get(origin)
        if container is not None:
            args = get_args(target)
            if container is tuple:
                if len(args) != 2 or args[1] is not Ellipsis:
                    raise UnsupportedTypeError(target, reason="must be a variadic tuple[T, ...]")
                args = args[:1]
            if len(args) != 1:
                raise UnsupportedTypeError(target, reason="must declare its element type")
            element = _resolve_scalar(unwrap_optional(args[0]), text_codecs)
            if element is None:
                logger.debug("unsupported array element type: %r", args[0])
                raise UnsupportedTypeError(target, reason="has an unsupported element type")
            return ArrayCodec(element=element, container=container)

        logger.debug("unsupported field type: %r", target)
        raise UnsupportedTypeError(target)


def _resolve_scalar(
    annotation: Any, text_codecs: tuple[tuple[type, TextCodec], ...]
) -> ScalarCodec | TextCodec | None:
    if get_origin(annotation) is Annotated:
        base, *extras = get_args(annotation)
        for extra in extras:
            if isinstance(extra, ScalarKind) and extra is not ScalarKind.TEXT:
                return ScalarCodec(kind=extra, python_type=base)
        annotation = base

    if not isinstance(annotation, type) or is_dataclass(annotation):
        return None

    for registered, codec in text_codecs:
        if issubclass(annotation, registered):
            return codec
    if callable(getattr(annotation, "to_text", None)) and callable(
        getattr(annotation, "from_text", None)
    ):
        return text_codec_for_class(annotation)

    if issubclass(annotation, bool):
        return ScalarCodec(kind=ScalarKind.BOOL, python_type=annotation)
    if issubclass(annotation, int):
        return ScalarCodec(kind=ScalarKind.INT, python_type=annotation)
    if issubclass(annotation, float):
        return ScalarCodec(kind=ScalarKind.FLOAT64, python_type=annotation)
    if issubclass(annotation, Decimal):
        return ScalarCodec(kind=ScalarKind.DECIMAL, python_type=annotation)
    if issubclass(annotation, str):
        return ScalarCodec(kind=ScalarKind.STRING, python_type=annotation)
    if issubclass(annotation, (bytes, bytearray)):
        return ScalarCodec(kind=ScalarKind.BYTES, python_type=annotation)
    return None


def _datetime_to_text(value: datetime) -> str:
    text = value.isoformat()
    if text.endswith("+00:00"):
        return text[: -len("+00:00")] + "Z"
    return text


default_registry = CodecRegistry()
default_registry.register_text_codec(datetime, _datetime_to_text, datetime.fromisoformat)
default_registry.register_text_codec(uuid.UUID, str, uuid.UUID)


def register_text_codec(
    python_type: type,
    to_text: Callable[[Any], str | bytes],
    from_text: Callable[[str], Any],
) -> None:
    default_registry.register_text_codec(python_type, to_text, from_text)


def codec_for(annotation: Any) -> Codec:
    return default_registry.codec_for(annotation)


def scalar_kind_for(annotation: Any) -> ScalarKind:
    return default_registry.scalar_kind_for(annotation)
