"""Tests for the configuration publish script."""

from __future__ import annotations

import json
import shutil
import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from nmwguard.core.config import PACKAGED_DATA_DIR

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from publish_config import check_tables, ensure_bucket, main, publish_tables  # noqa: E402

REGION = "eu-west-2"


@pytest.fixture
def s3():
    with mock_aws():
        yield boto3.client("s3", region_name=REGION)


@pytest.fixture
def broken_dir(tmp_path):
    shutil.copy(PACKAGED_DATA_DIR / "nmw_components.json", tmp_path)
    rates = json.loads((PACKAGED_DATA_DIR / "rates.json").read_text())
    rates["rates"][1]["effectiveTo"] = None
    (tmp_path / "rates.json").write_text(json.dumps(rates))
    return tmp_path


class TestEnsureBucket:
    def test_creates_bucket_in_region(self, s3):
        ensure_bucket(s3, "nmw-config", REGION)
        assert s3.get_bucket_location(Bucket="nmw-config")["LocationConstraint"] == REGION

    def test_idempotent_skips_existing(self, s3, capsys):
        ensure_bucket(s3, "nmw-config", REGION)
        ensure_bucket(s3, "nmw-config", REGION)
        assert "already exists" in capsys.readouterr().out


class TestCheckTables:
    def test_packaged_tables_pass(self):
        assert check_tables(PACKAGED_DATA_DIR) == []

    def test_errors_are_prefixed_with_table(self, broken_dir):
        assert check_tables(broken_dir) == ["rates.json: Rate records from 2023-04-01 and 2024-04-01 overlap"]


def test_publish_tables_uploads_both(s3):
    ensure_bucket(s3, "nmw-config", REGION)
    keys = publish_tables(s3, "nmw-config", "config/", PACKAGED_DATA_DIR)
    assert keys == ["config/rates.json", "config/nmw_components.json"]
    body = s3.get_object(Bucket="nmw-config", Key="config/rates.json")["Body"].read()
    assert body == (PACKAGED_DATA_DIR / "rates.json").read_bytes()


class TestMain:
    def test_publishes_packaged_tables(self, s3):
        assert main(["--bucket", "nmw-config", "--region", REGION]) == 0
        listed = s3.list_objects_v2(Bucket="nmw-config", Prefix="config/")
        assert sorted(o["Key"] for o in listed["Contents"]) == ["config/nmw_components.json", "config/rates.json"]

    def test_invalid_tables_abort_before_upload(self, s3, broken_dir, capsys):
        assert main(["--bucket", "nmw-config", "--directory", str(broken_dir)]) == 1
        assert "Aborted" in capsys.readouterr().out
        assert "nmw-config" not in {b["Name"] for b in s3.list_buckets()["Buckets"]}
