from __future__ import annotations

from typing import Any


class TagdbPyError(Exception):
    pass


class InvalidInputError(TagdbPyError, TypeError):
    pass


class ValueNotInstanceError(InvalidInputError):
    def __init__(self, message: str = "tagdb: value is not a mutable record instance") -> None:
        super().__init__(message)


class ValueNotRecordError(InvalidInputError):
    def __init__(self, message: str = "tagdb: value is not a dataclass record") -> None:
        super().__init__(message)


class UnsupportedTypeError(TagdbPyError, TypeError):
    def __init__(self, annotation: Any, *, reason: str = "type is not supported") -> None:
        super().__init__(f"tagdb: {_describe(annotation)} {reason}")
        self.annotation = annotation


class EncodeError(TagdbPyError, ValueError):
    pass


class DecodeError(TagdbPyError, ValueError):
    def __init__(self, message: str, *, attribute: str | None = None) -> None:
        super().__init__(f"{attribute}: {message}" if attribute else message)
        self.attribute = attribute


class ScalarParseError(DecodeError):
    pass


class CustomCodecError(DecodeError):
    pass


class KeySchemaError(TagdbPyError, ValueError):
    pass


class ConditionFailedError(TagdbPyError):
    pass


class NotFoundError(TagdbPyError):
    pass


class ValidationError(TagdbPyError):
    pass


class BatchRetryExceededError(TagdbPyError):
    def __init__(self, *, operation: str, unprocessed_count: int) -> None:
        super().__init__(f"{operation}: retry limit exceeded (unprocessed={unprocessed_count})")
        self.operation = operation
        self.unprocessed_count = unprocessed_count


class AwsError(TagdbPyError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


def _describe(annotation: Any) -> str:
    name = getattr(annotation, "__qualname__", None)
    if isinstance(name, str) and not getattr(annotation, "__args__", None):
        return name
    return repr(annotation)
