from __future__ import annotations

import json
import os
import uuid

import boto3

from dynamodown import StoreFactory


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    client = _client()
    table_name = f"dynamodown_example_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "pk", "KeyType": "HASH"}, {"AttributeName": "sk", "KeyType": "RANGE"}],
        AttributeDefinitions=[
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        factory = StoreFactory(client)
        with factory.open(f"{table_name}/notes") as store:
            store.put("001", json.dumps({"value": "first"}))
            store.batch(
                [
                    {"type": "put", "key": "010", "value": json.dumps({"value": "tenth"})},
                    {"type": "put", "key": "100", "value": json.dumps({"value": "hundredth"})},
                ]
            )

            print("get:", store.get("010", as_buffer=False))
            print("range 001..010:", list(store.iterator(gte="001", lte="010")))

        print("destroyed:", factory.destroy(f"{table_name}/notes"))
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
