"""Validate the rate table and classification rule table, then upload them to S3.

Usage:
    python scripts/publish_config.py --bucket nmwguard-config --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

import boto3

from nmwguard.core.config import PACKAGED_DATA_DIR
from nmwguard.models.rates import RateTableSnapshot
from nmwguard.models.rules import RuleTableSnapshot
from nmwguard.persistence.validation import validate_rate_table, validate_rule_table

RATE_TABLE = "rates.json"
RULE_TABLE = "nmw_components.json"


def ensure_bucket(s3: Any, bucket: str, region: str) -> None:
    """Create the bucket. Skips if it already exists."""
    existing = {b["Name"] for b in s3.list_buckets().get("Buckets", [])}
    if bucket in existing:
        print(f"  Bucket {bucket} already exists, skipping")
        return
    kwargs: dict[str, Any] = {"Bucket": bucket}
    if region != "us-east-1":
        kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
    s3.create_bucket(**kwargs)
    print(f"  Created bucket {bucket}")


def check_tables(directory: Path) -> list[str]:
    """Validate both tables; returns every error found (warnings are printed)."""
    rates_doc = json.loads((directory / RATE_TABLE).read_text(), parse_float=Decimal)
    rules_doc = json.loads((directory / RULE_TABLE).read_text(), parse_float=Decimal)

    rate_errors, rate_warnings = validate_rate_table(RateTableSnapshot.from_document(rates_doc))
    rule_errors, rule_warnings = validate_rule_table(RuleTableSnapshot.from_document(rules_doc))
    for warning in rate_warnings + rule_warnings:
        print(f"  WARNING: {warning}")
    return [f"{RATE_TABLE}: {e}" for e in rate_errors] + [f"{RULE_TABLE}: {e}" for e in rule_errors]


def publish_tables(s3: Any, bucket: str, prefix: str, directory: Path) -> list[str]:
    """Upload both tables under ``prefix``; returns the object keys written."""
    keys = []
    for name in (RATE_TABLE, RULE_TABLE):
        key = f"{prefix}{name}"
        s3.put_object(
            Bucket=bucket,
            Key=key,
            Body=(directory / name).read_bytes(),
            ContentType="application/json",
        )
        keys.append(key)
        print(f"  Uploaded s3://{bucket}/{key}")
    return keys


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Publish NMW Guard configuration tables to S3")
    parser.add_argument("--bucket", default="nmwguard-config", help="Target S3 bucket")
    parser.add_argument("--prefix", default="config/", help="Key prefix for both tables")
    parser.add_argument("--directory", type=Path, default=PACKAGED_DATA_DIR, help="Directory holding the tables")
    parser.add_argument("--endpoint-url", default=None, help="S3 endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--region", default="eu-west-2", help="AWS region")
    args = parser.parse_args(argv)

    print("Validating tables...")
    errors = check_tables(args.directory)
    if errors:
        for error in errors:
            print(f"  ERROR: {error}")
        print("Aborted: configuration is invalid")
        return 1

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url
    s3 = boto3.client("s3", **kwargs)

    print("Preparing bucket...")
    ensure_bucket(s3, args.bucket, args.region)

    print("Uploading tables...")
    publish_tables(s3, args.bucket, args.prefix, args.directory)

    print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
