from __future__ import annotations

import json

import pytest
from botocore.exceptions import ClientError

from dynamodown import (
    BatchRetryExceededError,
    BatchWriter,
    ProviderError,
    TableSchema,
    ValidationError,
    WriteOperation,
)
from dynamodown.batch import _backoff_seconds
from dynamodown.testkit import FakeDynamoDBClient, MemoryDynamoDBClient, key_schema, no_sleep

SCHEMA = TableSchema(table_name="tbl", hash_attribute="pk", hash_value="H", range_attribute="sk")


@pytest.fixture()
def client() -> MemoryDynamoDBClient:
    client = MemoryDynamoDBClient()
    client.create_table(TableName="tbl", KeySchema=key_schema())
    return client


def _puts(count: int) -> list[WriteOperation]:
    return [WriteOperation.put(f"k{i:03d}", json.dumps({"n": i})) for i in range(count)]


def _sent(client: MemoryDynamoDBClient) -> list[list[dict]]:
    return [req["RequestItems"]["tbl"] for req in client.calls_to("batch_write_item")]


def test_operations_are_chunked_by_25(client: MemoryDynamoDBClient) -> None:
    calls = BatchWriter(client, SCHEMA, sleep=no_sleep).write(_puts(60))

    assert calls == 3
    assert [len(chunk) for chunk in _sent(client)] == [25, 25, 10]
    assert client.count("tbl", "H") == 60


def test_unprocessed_entries_are_resubmitted_first(client: MemoryDynamoDBClient) -> None:
    rounds: list[list[dict]] = []

    def unprocessed(entries: list[dict]) -> list[dict]:
        rounds.append(entries)
        return entries[:2] if len(rounds) == 1 else []

    client.unprocessed = unprocessed
    sleeps: list[float] = []

    calls = BatchWriter(client, SCHEMA, sleep=sleeps.append).write(_puts(60))

    sent = _sent(client)
    assert calls == 3
    assert sent[1][:2] == sent[0][:2]
    assert len(sent[1]) == 25
    assert [len(chunk) for chunk in sent] == [25, 25, 12]
    assert sleeps == [0.05]
    assert client.count("tbl", "H") == 60


def test_retry_limit_raises_with_unprocessed_count(client: MemoryDynamoDBClient) -> None:
    client.unprocessed = lambda entries: entries
    sleeps: list[float] = []

    writer = BatchWriter(client, SCHEMA, max_retries=2, sleep=sleeps.append)
    with pytest.raises(BatchRetryExceededError) as excinfo:
        writer.write(_puts(3))

    assert excinfo.value.unprocessed_count == 3
    assert excinfo.value.operation == "batch_write"
    assert len(client.calls_to("batch_write_item")) == 3
    assert sleeps == [0.05, 0.1]


def test_zero_retries_fails_on_first_unprocessed_round(client: MemoryDynamoDBClient) -> None:
    client.unprocessed = lambda entries: entries
    with pytest.raises(BatchRetryExceededError):
        BatchWriter(client, SCHEMA, max_retries=0, sleep=no_sleep).write(_puts(1))
    assert len(client.calls_to("batch_write_item")) == 1


def test_retry_counter_resets_after_a_clean_round(client: MemoryDynamoDBClient) -> None:
    rounds: list[int] = []

    def unprocessed(entries: list[dict]) -> list[dict]:
        rounds.append(len(entries))
        return entries[:1] if len(rounds) in (1, 3) else []

    client.unprocessed = unprocessed
    writer = BatchWriter(client, SCHEMA, batch_size=2, max_retries=1, sleep=no_sleep)

    assert writer.write(_puts(6)) == 4
    assert client.count("tbl", "H") == 6


def test_provider_failure_aborts_the_batch() -> None:
    fake = FakeDynamoDBClient()
    err = ClientError({"Error": {"Code": "ValidationException", "Message": "bad"}}, "BatchWriteItem")
    fake.expect("batch_write_item", error=err)

    with pytest.raises(ProviderError) as excinfo:
        BatchWriter(fake, SCHEMA, sleep=no_sleep).write(_puts(30))

    assert excinfo.value.code == "ValidationException"
    assert excinfo.value.__cause__ is err
    fake.assert_no_pending()


def test_request_shapes() -> None:
    fake = FakeDynamoDBClient()
    fake.expect(
        "batch_write_item",
        {
            "RequestItems": {
                "tbl": [
                    {"PutRequest": {"Item": {"pk": {"S": "H"}, "sk": {"S": "a"}, "v": {"N": "1"}}}},
                    {"DeleteRequest": {"Key": {"pk": {"S": "H"}, "sk": {"S": "b"}}}},
                ]
            }
        },
        response={"UnprocessedItems": {}},
    )

    calls = BatchWriter(fake, SCHEMA, sleep=no_sleep).write(
        [{"type": "put", "key": "a", "value": '{"v": 1}'}, {"type": "del", "key": "b"}]
    )

    assert calls == 1
    fake.assert_no_pending()


def test_last_operation_per_key_wins(client: MemoryDynamoDBClient) -> None:
    ops = [WriteOperation.put("a", "{}"), WriteOperation.put("b", "{}"), WriteOperation.delete("a")]
    BatchWriter(client, SCHEMA, sleep=no_sleep).write(ops)

    (chunk,) = _sent(client)
    assert chunk == [
        {"PutRequest": {"Item": {"pk": {"S": "H"}, "sk": {"S": "b"}}}},
        {"DeleteRequest": {"Key": {"pk": {"S": "H"}, "sk": {"S": "a"}}}},
    ]


def test_empty_batch_makes_no_calls(client: MemoryDynamoDBClient) -> None:
    assert BatchWriter(client, SCHEMA).write([]) == 0
    assert client.calls_to("batch_write_item") == []


@pytest.mark.parametrize(
    "op",
    [{"type": "merge", "key": "a"}, {"type": "put", "key": ""}, {"type": "del"}, "put a"],
)
def test_invalid_operations_are_rejected(op: object) -> None:
    with pytest.raises(ValidationError):
        WriteOperation.coerce(op)  # type: ignore[arg-type]


@pytest.mark.parametrize("kwargs", [{"batch_size": 0}, {"batch_size": 26}, {"max_retries": -1}])
def test_writer_settings_are_validated(kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        BatchWriter(object(), SCHEMA, **kwargs)


def test_backoff_doubles_and_caps() -> None:
    assert [_backoff_seconds(n) for n in (1, 2, 3)] == [0.05, 0.1, 0.2]
    assert _backoff_seconds(6) == 1.0
    assert _backoff_seconds(20) == 1.0


def test_steady_partial_progress_does_not_exhaust_retries(client: MemoryDynamoDBClient) -> None:
    client.unprocessed = lambda entries: entries[:1] if len(entries) > 1 else []
    sleeps: list[float] = []

    calls = BatchWriter(client, SCHEMA, max_retries=5, sleep=sleeps.append).write(_puts(200))

    assert calls == 10
    assert sleeps == [0.05] * 9
    assert client.count("tbl", "H") == 200


def test_rounds_without_progress_still_count_toward_the_limit(client: MemoryDynamoDBClient) -> None:
    rounds: list[int] = []

    def unprocessed(entries: list[dict]) -> list[dict]:
        rounds.append(len(entries))
        return entries[:1] if len(rounds) == 1 else entries

    client.unprocessed = unprocessed
    with pytest.raises(BatchRetryExceededError) as excinfo:
        BatchWriter(client, SCHEMA, max_retries=2, sleep=no_sleep).write(_puts(3))

    assert rounds == [3, 1, 1]
    assert excinfo.value.unprocessed_count == 1
