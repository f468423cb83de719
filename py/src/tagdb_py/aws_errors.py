from __future__ import annotations

from botocore.exceptions import ClientError

from .errors import AwsError, ConditionFailedError, NotFoundError, TagdbPyError, ValidationError

_MAPPED: dict[str, tuple[type[TagdbPyError], str]] = {
    "ConditionalCheckFailedException": (ConditionFailedError, "condition check failed"),
    "ValidationException": (ValidationError, "validation failed"),
    "ResourceNotFoundException": (NotFoundError, "resource not found"),
}


def error_code(err: ClientError) -> str:
    return str(err.response.get("Error", {}).get("Code", ""))


def map_client_error(err: ClientError) -> TagdbPyError:
    code = error_code(err)
    message = str(err.response.get("Error", {}).get("Message", ""))

    mapped = _MAPPED.get(code)
    if mapped is not None:
        error_type, fallback = mapped
        return error_type(message or fallback)
    return AwsError(code=code or "UnknownError", message=message or str(err))
