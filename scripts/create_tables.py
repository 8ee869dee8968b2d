#!/usr/bin/env python3
"""Create the DynamoDB quotes and partners tables (local or AWS). Set DYNAMODB_ENDPOINT_URL for local."""

import os
import sys
from pathlib import Path

import boto3
from dotenv import load_dotenv

# Load .env from the repo root so AWS_REGION etc. are set
_repo_root = Path(__file__).resolve().parent.parent
load_dotenv(_repo_root / ".env")
load_dotenv(_repo_root / ".env.local")

TABLES = {
    os.environ.get("DYNAMODB_QUOTES_TABLE", "hydropack_quotes"): "id",
    os.environ.get("DYNAMODB_PARTNERS_TABLE", "hydropack_partners"): "partner_code",
}


def main():
    endpoint = os.environ.get("DYNAMODB_ENDPOINT_URL")
    region = os.environ.get("AWS_REGION", "us-west-2")
    kwargs = {"region_name": region}
    if endpoint:
        kwargs["endpoint_url"] = endpoint
    client = boto3.client("dynamodb", **kwargs)
    failed = False
    for table_name, key in TABLES.items():
        try:
            client.create_table(
                TableName=table_name,
                KeySchema=[{"AttributeName": key, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": key, "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST",
            )
            print(f"Created table: {table_name}")
        except client.exceptions.ResourceInUseException:
            print(f"Table {table_name} already exists.", file=sys.stderr)
        except Exception as e:
            print(f"Error creating {table_name}: {e}", file=sys.stderr)
            failed = True
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
