from __future__ import annotations

import math
import re
import struct
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Protocol, Self, runtime_checkable

from boto3.dynamodb.types import Binary

from .errors import CustomCodecError, DecodeError, EncodeError, ScalarParseError


class ScalarKind(Enum):
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    DECIMAL = "decimal"
    STRING = "string"
    BYTES = "bytes"
    TEXT = "text"


Int = int
UInt = Annotated[int, ScalarKind.UINT]
Float32 = Annotated[float, ScalarKind.FLOAT32]
Float64 = float

NUMBER_KINDS = frozenset(
    {ScalarKind.INT, ScalarKind.UINT, ScalarKind.FLOAT32, ScalarKind.FLOAT64, ScalarKind.DECIMAL}
)

_TAGS: dict[ScalarKind, str] = {
    ScalarKind.BOOL: "S",
    ScalarKind.INT: "N",
    ScalarKind.UINT: "N",
    ScalarKind.FLOAT32: "N",
    ScalarKind.FLOAT64: "N",
    ScalarKind.DECIMAL: "N",
    ScalarKind.STRING: "S",
    ScalarKind.BYTES: "B",
    ScalarKind.TEXT: "S",
}

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

# "010" is octal, as in C-style base-0 parsing.
_LEGACY_OCTAL = re.compile(r"[+-]?0[0-7]+\Z")


@runtime_checkable
class TextMarshaler(Protocol):
    def to_text(self) -> str: ...

    @classmethod
    def from_text(cls, text: str) -> Self: ...


class Codec(Protocol):
    @property
    def tag(self) -> str: ...

    def encode(self, value: Any) -> Any: ...

    def decode(self, raw: Any) -> Any: ...


def tag_for(kind: ScalarKind) -> str:
    return _TAGS[kind]


@dataclass(frozen=True)
class ScalarCodec:
    kind: ScalarKind
    python_type: type

    @property
    def tag(self) -> str:
        return _TAGS[self.kind]

    def encode(self, value: Any) -> Any:
        return _ENCODERS[self.kind](value)

    def decode(self, raw: Any) -> Any:
        value = _DECODERS[self.kind](raw)
        if type(value) is self.python_type:
            return value
        try:
            return self.python_type(value)
        except (TypeError, ValueError) as err:
            raise ScalarParseError(
                f"cannot convert {value!r} to {self.python_type.__qualname__}"
            ) from err


@dataclass(frozen=True)
class TextCodec:
    python_type: type
    to_text: Callable[[Any], str | bytes]
    from_text: Callable[[str], Any]

    @property
    def tag(self) -> str:
        return "S"

    @property
    def kind(self) -> ScalarKind:
        return ScalarKind.TEXT

    def encode(self, value: Any) -> str:
        try:
            out = self.to_text(value)
        except Exception as err:
            raise EncodeError(f"{self.python_type.__qualname__}: text encoding failed: {err}") from err
        if isinstance(out, (bytes, bytearray)):
            return bytes(out).decode("utf-8")
        if not isinstance(out, str):
            raise EncodeError(f"{self.python_type.__qualname__}: text encoding must return str")
        return out

    def decode(self, raw: Any) -> Any:
        text = _require_str(raw, "S")
        try:
            return self.from_text(text)
        except Exception as err:
            raise CustomCodecError(
                f"{self.python_type.__qualname__}: text decoding failed: {err}"
            ) from err


@dataclass(frozen=True)
class ArrayCodec:
    element: ScalarCodec | TextCodec
    container: type = list

    @property
    def tag(self) -> str:
        return f"{self.element.tag}S"

    def encode(self, value: Any) -> list[Any]:
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(
            value, (list, tuple, set, frozenset)
        ):
            raise EncodeError(f"expected a sequence for {self.tag}, got {type(value).__name__}")
        return [self.element.encode(v) for v in value]

    def decode(self, raw: Any) -> Any:
        if not isinstance(raw, (list, tuple)):
            raise DecodeError(f"{self.tag} value must be a list, got {type(raw).__name__}")
        return self.container([self.element.decode(v) for v in raw])


def text_codec_for_class(cls: type) -> TextCodec:
    return TextCodec(python_type=cls, to_text=lambda v: v.to_text(), from_text=cls.from_text)


def format_float64(value: float) -> str:
    return _plain_decimal(repr(value))


def format_float32(value: float) -> str:
    for digits in range(1, 10):
        text = f"{value:.{digits}g}"
        if _round32(float(text)) == value:
            return _plain_decimal(text)
    return _plain_decimal(repr(value))


def _plain_decimal(text: str) -> str:
    out = format(Decimal(text), "f")
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    return out


def _round32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _require_str(raw: Any, tag: str) -> str:
    if not isinstance(raw, str):
        raise DecodeError(f"{tag} value must be a string, got {type(raw).__name__}")
    return raw


def _require_number(raw: Any) -> str:
    text = _require_str(raw, "N")
    if not text or text != text.strip():
        raise ScalarParseError(f"invalid number: {text!r}")
    return text


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _encode_bool(value: Any) -> str:
    if not isinstance(value, bool):
        raise EncodeError(f"expected bool, got {type(value).__name__}")
    return "true" if value else "false"


def _decode_bool(raw: Any) -> bool:
    text = _require_str(raw, "S")
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ScalarParseError(f"invalid boolean: {text!r}")


def _encode_int(value: Any) -> str:
    if not _is_integer(value):
        raise EncodeError(f"expected int, got {type(value).__name__}")
    return str(int(value))


def _decode_int(raw: Any) -> int:
    text = _require_number(raw)
    try:
        if _LEGACY_OCTAL.match(text):
            return int(text, 8)
        return int(text, 0)
    except ValueError as err:
        raise ScalarParseError(f"invalid integer: {text!r}") from err


def _encode_uint(value: Any) -> str:
    if not _is_integer(value):
        raise EncodeError(f"expected int, got {type(value).__name__}")
    if value < 0:
        raise EncodeError(f"unsigned value is negative: {value}")
    return str(int(value))


def _decode_uint(raw: Any) -> int:
    text = _require_number(raw)
    if not (text.isascii() and text.isdigit()):
        raise ScalarParseError(f"invalid unsigned integer: {text!r}")
    return int(text, 10)


def _finite_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EncodeError(f"expected float, got {type(value).__name__}")
    out = float(value)
    if not math.isfinite(out):
        raise EncodeError(f"number is not finite: {out}")
    return out


def _encode_float64(value: Any) -> str:
    return format_float64(_finite_float(value))


def _encode_float32(value: Any) -> str:
    try:
        rounded = _round32(_finite_float(value))
    except OverflowError as err:
        raise EncodeError(f"value out of float32 range: {value}") from err
    return format_float32(rounded)


def _decode_float64(raw: Any) -> float:
    text = _require_number(raw)
    try:
        return float(text)
    except ValueError as err:
        raise ScalarParseError(f"invalid float: {text!r}") from err


def _decode_float32(raw: Any) -> float:
    value = _decode_float64(raw)
    try:
        return _round32(value)
    except OverflowError as err:
        raise ScalarParseError(f"value out of float32 range: {raw!r}") from err


def _encode_decimal(value: Any) -> str:
    if _is_integer(value):
        return str(int(value))
    if not isinstance(value, Decimal):
        raise EncodeError(f"expected Decimal, got {type(value).__name__}")
    if not value.is_finite():
        raise EncodeError(f"number is not finite: {value}")
    return format(value, "f")


def _decode_decimal(raw: Any) -> Decimal:
    text = _require_number(raw)
    try:
        value = Decimal(text)
    except InvalidOperation as err:
        raise ScalarParseError(f"invalid decimal: {text!r}") from err
    if not value.is_finite():
        raise ScalarParseError(f"number is not finite: {text!r}")
    return value


def _encode_string(value: Any) -> str:
    if not isinstance(value, str):
        raise EncodeError(f"expected str, got {type(value).__name__}")
    return str.__str__(value)


def _decode_string(raw: Any) -> str:
    return _require_str(raw, "S")


def _encode_bytes(value: Any) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise EncodeError(f"expected bytes, got {type(value).__name__}")
    return bytes(value)


def _decode_bytes(raw: Any) -> bytes:
    if isinstance(raw, Binary):
        return bytes(raw.value)
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw)
    if isinstance(raw, str):
        return raw.encode("utf-8")
    raise DecodeError(f"B value must be bytes, got {type(raw).__name__}")


_ENCODERS: dict[ScalarKind, Callable[[Any], Any]] = {
    ScalarKind.BOOL: _encode_bool,
    ScalarKind.INT: _encode_int,
    ScalarKind.UINT: _encode_uint,
    ScalarKind.FLOAT32: _encode_float32,
    ScalarKind.FLOAT64: _encode_float64,
    ScalarKind.DECIMAL: _encode_decimal,
    ScalarKind.STRING: _encode_string,
    ScalarKind.BYTES: _encode_bytes,
}

_DECODERS: dict[ScalarKind, Callable[[Any], Any]] = {
    ScalarKind.BOOL: _decode_bool,
    ScalarKind.INT: _decode_int,
    ScalarKind.UINT: _decode_uint,
    ScalarKind.FLOAT32: _decode_float32,
    ScalarKind.FLOAT64: _decode_float64,
    ScalarKind.DECIMAL: _decode_decimal,
    ScalarKind.STRING: _decode_string,
    ScalarKind.BYTES: _decode_bytes,
}
