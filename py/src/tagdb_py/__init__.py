from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .codecs import Float32, Float64, Int, ScalarKind, TextMarshaler, UInt
from .dispatch import CodecRegistry, codec_for, default_registry, register_text_codec
from .errors import (
    AwsError,
    BatchRetryExceededError,
    ConditionFailedError,
    CustomCodecError,
    DecodeError,
    EncodeError,
    InvalidInputError,
    KeySchemaError,
    NotFoundError,
    ScalarParseError,
    TagdbPyError,
    UnsupportedTypeError,
    ValidationError,
    ValueNotInstanceError,
    ValueNotRecordError,
)
from .marshal import AttributeValue, is_empty, marshal, marshal_keys
from .model import RecordDefinition, RecordField, dynamo_field
from .tags import FieldTag, TagOptions, parse_tag
from .unmarshal import unmarshal, unmarshal_all

if TYPE_CHECKING:
    from .runtime import ClientConfig, create_boto3_config, create_dynamodb_client
    from .schema import (
        WaitOptions,
        attribute_definitions,
        build_create_table_request,
        create_table,
        delete_table,
        describe_table,
        ensure_table,
        key_schema,
        list_tables,
    )
    from .table import Table


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except Exception:
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name in {
        "WaitOptions",
        "attribute_definitions",
        "build_create_table_request",
        "create_table",
        "delete_table",
        "describe_table",
        "ensure_table",
        "key_schema",
        "list_tables",
    }:
        from . import schema

        return getattr(schema, name)
    if name == "Table":
        from .table import Table

        return Table
    if name in {"ClientConfig", "create_boto3_config", "create_dynamodb_client"}:
        from . import runtime

        return getattr(runtime, name)
    raise AttributeError(name)


__all__ = [
    "AttributeValue",
    "AwsError",
    "BatchRetryExceededError",
    "ClientConfig",
    "CodecRegistry",
    "ConditionFailedError",
    "CustomCodecError",
    "DecodeError",
    "EncodeError",
    "FieldTag",
    "Float32",
    "Float64",
    "Int",
    "InvalidInputError",
    "KeySchemaError",
    "NotFoundError",
    "RecordDefinition",
    "RecordField",
    "ScalarKind",
    "ScalarParseError",
    "Table",
    "TagOptions",
    "TagdbPyError",
    "TextMarshaler",
    "UInt",
    "UnsupportedTypeError",
    "ValidationError",
    "ValueNotInstanceError",
    "ValueNotRecordError",
    "WaitOptions",
    "__repo_version__",
    "__version__",
    "attribute_definitions",
    "build_create_table_request",
    "codec_for",
    "create_boto3_config",
    "create_dynamodb_client",
    "create_table",
    "default_registry",
    "delete_table",
    "describe_table",
    "dynamo_field",
    "ensure_table",
    "is_empty",
    "key_schema",
    "list_tables",
    "marshal",
    "marshal_keys",
    "parse_tag",
    "register_text_codec",
    "unmarshal",
    "unmarshal_all",
]
