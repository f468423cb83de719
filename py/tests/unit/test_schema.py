from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import pytest

from tagdb_py import (
    AwsError,
    Float32,
    KeySchemaError,
    NotFoundError,
    UInt,
    ValidationError,
    dynamo_field,
)
from tagdb_py.schema import (
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
from tagdb_py.testkit import FakeDynamoDBClient, SleepRecorder, client_error, no_sleep


@dataclass
class Song:
    artist: str = dynamo_field("artist,range", default="")
    title: str = dynamo_field("title,hash", default="")
    plays: int = 0


@dataclass
class Event:
    stream: bytes = dynamo_field("Stream,hash", default=b"")
    seq: UInt = dynamo_field("Seq,range", default=0)


@dataclass
class Reading:
    sensor: datetime = dynamo_field("sensor,hash", default=datetime.min)
    value: Float32 = dynamo_field("value,range", default=0.0)


@dataclass
class Ledger:
    account: Decimal = dynamo_field("account,hash", default=Decimal(0))
    active: bool = dynamo_field("active,range", default=False)


@dataclass
class Ambiguous:
    id: str = dynamo_field("id,hash,range", default="")


@dataclass
class ArrayKey:
    ids: list[int] = dynamo_field("ids,hash", default_factory=list)


@dataclass
class NoHash:
    sort: str = dynamo_field("sort,range", default="")


@dataclass
class TwoHashes:
    a: str = dynamo_field("a,hash", default="")
    b: str = dynamo_field("b,hash", default="")


@dataclass
class TwoRanges:
    pk: str = dynamo_field("pk,hash", default="")
    a: str = dynamo_field("a,range", default="")
    b: str = dynamo_field("b,range", default="")


@dataclass
class Keyless:
    name: str = ""


def test_key_schema_and_attribute_definitions_follow_field_order() -> None:
    assert key_schema(Song) == [
        {"AttributeName": "artist", "KeyType": "RANGE"},
        {"AttributeName": "title", "KeyType": "HASH"},
    ]
    assert attribute_definitions(Song()) == [
        {"AttributeName": "artist", "AttributeType": "S"},
        {"AttributeName": "title", "AttributeType": "S"},
    ]


def test_key_type_guesses() -> None:
    assert attribute_definitions(Event) == [
        {"AttributeName": "Stream", "AttributeType": "B"},
        {"AttributeName": "Seq", "AttributeType": "N"},
    ]
    assert [d["AttributeType"] for d in attribute_definitions(Reading)] == ["S", "N"]
    assert [d["AttributeType"] for d in attribute_definitions(Ledger)] == ["N", "S"]


def test_keyless_record_has_empty_schema() -> None:
    assert key_schema(Keyless) == []
    assert attribute_definitions(Keyless) == []


def test_field_with_both_key_roles_is_rejected() -> None:
    with pytest.raises(KeySchemaError, match="both hash and range"):
        key_schema(Ambiguous)
    with pytest.raises(KeySchemaError):
        attribute_definitions(Ambiguous)


def test_array_key_field_is_rejected() -> None:
    assert key_schema(ArrayKey) == [{"AttributeName": "ids", "KeyType": "HASH"}]
    with pytest.raises(KeySchemaError, match="scalar"):
        attribute_definitions(ArrayKey)


def test_build_create_table_request_puts_hash_first() -> None:
    req = build_create_table_request(Song, table_name="songs")
    assert req == {
        "TableName": "songs",
        "BillingMode": "PAY_PER_REQUEST",
        "KeySchema": [
            {"AttributeName": "title", "KeyType": "HASH"},
            {"AttributeName": "artist", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "artist", "AttributeType": "S"},
            {"AttributeName": "title", "AttributeType": "S"},
        ],
    }


def test_build_create_table_request_provisioned() -> None:
    req = build_create_table_request(
        Event,
        table_name="events",
        billing_mode="PROVISIONED",
        provisioned_throughput={"ReadCapacityUnits": 5, "WriteCapacityUnits": 2},
    )
    assert req["BillingMode"] == "PROVISIONED"
    assert req["ProvisionedThroughput"] == {"ReadCapacityUnits": 5, "WriteCapacityUnits": 2}

    with pytest.raises(ValidationError, match="provisioned_throughput"):
        build_create_table_request(Event, table_name="events", billing_mode="PROVISIONED")
    with pytest.raises(ValidationError, match="billing_mode"):
        build_create_table_request(Event, table_name="events", billing_mode="ON_DEMAND")
    with pytest.raises(ValueError, match="table_name"):
        build_create_table_request(Event, table_name="")


@pytest.mark.parametrize(
    ("record", "message"),
    [
        (NoHash, "exactly one hash"),
        (TwoHashes, "exactly one hash"),
        (TwoRanges, "at most one range"),
        (Keyless, "exactly one hash"),
    ],
)
def test_build_create_table_request_validates_keys(record: type, message: str) -> None:
    with pytest.raises(KeySchemaError, match=message):
        build_create_table_request(record, table_name="t")


def test_create_table_waits_for_active() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "create_table", {"TableName": "songs", "KeySchema": [{"KeyType": "HASH"}, {"KeyType": "RANGE"}]}
    )
    client.expect("describe_table", {"TableName": "songs"}, response={"Table": {"TableStatus": "CREATING"}})
    client.expect("describe_table", {"TableName": "songs"}, response={"Table": {"TableStatus": "ACTIVE"}})

    sleep = SleepRecorder()
    create_table(
        Song, table_name="songs", client=client, wait=WaitOptions(poll_interval_seconds=0.5, sleep=sleep)
    )

    assert sleep.delays == [0.5]
    client.assert_no_pending()


def test_create_table_tolerates_existing_table() -> None:
    client = FakeDynamoDBClient()
    client.expect("create_table", error=client_error("ResourceInUseException", "exists"))
    client.expect("describe_table", response={"Table": {"TableStatus": "ACTIVE"}})

    create_table(Song, table_name="songs", client=client)
    client.assert_no_pending()


def test_create_table_maps_other_errors() -> None:
    client = FakeDynamoDBClient()
    client.expect("create_table", error=client_error("ValidationException", "bad schema"))

    with pytest.raises(ValidationError, match="bad schema"):
        create_table(Song, table_name="songs", client=client)


def test_create_table_without_waiting() -> None:
    client = FakeDynamoDBClient()
    client.expect("create_table")

    create_table(Song, table_name="songs", client=client, wait=None)
    client.assert_no_pending()


def test_create_table_times_out() -> None:
    client = FakeDynamoDBClient()
    client.expect("create_table")

    with pytest.raises(ValidationError, match="timed out"):
        create_table(Song, table_name="songs", client=client, wait=WaitOptions(timeout_seconds=0))


def test_ensure_table_creates_missing_table() -> None:
    client = FakeDynamoDBClient()
    client.expect("describe_table", error=client_error("ResourceNotFoundException"))
    client.expect("create_table", {"TableName": "songs"})
    client.expect("describe_table", response={"Table": {"TableStatus": "ACTIVE"}})

    ensure_table(Song, table_name="songs", client=client)
    client.assert_no_pending()


def test_ensure_table_existing_table_only_waits() -> None:
    client = FakeDynamoDBClient()
    client.expect("describe_table", response={"Table": {"TableStatus": "ACTIVE"}})
    client.expect("describe_table", response={"Table": {"TableStatus": "ACTIVE"}})

    ensure_table(Song, table_name="songs", client=client)
    assert client.requests("create_table") == []
    client.assert_no_pending()


def test_delete_table_waits_until_gone() -> None:
    client = FakeDynamoDBClient()
    client.expect("delete_table", {"TableName": "songs"})
    client.expect("describe_table", response={"Table": {"TableStatus": "DELETING"}})
    client.expect("describe_table", error=client_error("ResourceNotFoundException"))

    delete_table("songs", client=client, wait=WaitOptions(sleep=no_sleep))
    client.assert_no_pending()


def test_delete_table_missing() -> None:
    client = FakeDynamoDBClient()
    client.expect("delete_table", error=client_error("ResourceNotFoundException", "gone"))
    delete_table("songs", client=client, ignore_missing=True)

    client.expect("delete_table", error=client_error("ResourceNotFoundException", "gone"))
    with pytest.raises(NotFoundError, match="gone"):
        delete_table("songs", client=client)


def test_describe_table() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "describe_table", {"TableName": "songs"}, response={"Table": {"TableName": "songs", "ItemCount": 3}}
    )
    assert describe_table("songs", client=client) == {"TableName": "songs", "ItemCount": 3}

    client.expect("describe_table", error=client_error("ThrottlingException", "slow down"))
    with pytest.raises(AwsError) as exc_info:
        describe_table("songs", client=client)
    assert exc_info.value.code == "ThrottlingException"


def test_list_tables_follows_pagination() -> None:
    client = FakeDynamoDBClient()
    client.expect("list_tables", {}, response={"TableNames": ["a", "b"], "LastEvaluatedTableName": "b"})
    client.expect("list_tables", {"ExclusiveStartTableName": "b"}, response={"TableNames": ["c"]})

    assert list_tables(client=client) == ["a", "b", "c"]
    assert client.requests("list_tables")[0] == {}
    client.assert_no_pending()
