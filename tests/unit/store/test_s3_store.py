"""Unit tests for S3VersionStore."""

from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from versiontrim.models.collection import FILE, FOLDER, Collection, ObjectItem, ObjectVersion
from versiontrim.models.retention_policy import RetentionPolicy
from versiontrim.store.base import DeleteFailure, StoreError
from versiontrim.store.s3 import UNVERSIONED, S3VersionStore


def _client_error(code: str, message: str = "error", operation: str = "Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def client() -> MagicMock:
    mock_client = MagicMock()
    mock_client.meta.endpoint_url = "https://s3.us-east-1.amazonaws.com"
    return mock_client


@pytest.fixture
def s3_store(client: MagicMock) -> S3VersionStore:
    return S3VersionStore(client, policy_bucket="acme-policy")


def _item(key: str = "reports/q1.xlsx") -> ObjectItem:
    return ObjectItem(collection="finance", object_id="etag", reference=key, display_name="q1.xlsx")


def _version(version_id: str) -> ObjectVersion:
    return ObjectVersion(version_id=version_id, label="1", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))


class TestListCollections:
    def test_classifies_buckets(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.list_buckets.return_value = {
            "Buckets": [{"Name": "finance"}, {"Name": "scratch"}, {"Name": "aws-cloudtrail-logs"}, {"Name": "acme-policy"}]
        }
        client.get_bucket_versioning.side_effect = lambda Bucket: (
            {"Status": "Enabled"} if Bucket == "finance" else {}
        )

        collections = {c.name: c for c in s3_store.list_collections()}

        assert collections["finance"].is_target_candidate is True
        assert collections["scratch"].kind == UNVERSIONED
        assert collections["aws-cloudtrail-logs"].hidden is True
        assert collections["acme-policy"].hidden is True
        assert not any(c.is_target_candidate for n, c in collections.items() if n != "finance")

    def test_suspended_versioning_still_a_target(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.list_buckets.return_value = {"Buckets": [{"Name": "archive"}]}
        client.get_bucket_versioning.return_value = {"Status": "Suspended"}

        assert s3_store.list_collections()[0].is_target_candidate is True

    def test_unreadable_versioning_excludes_bucket(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.list_buckets.return_value = {"Buckets": [{"Name": "locked-down"}]}
        client.get_bucket_versioning.side_effect = _client_error("AccessDenied")

        assert s3_store.list_collections()[0].kind == UNVERSIONED

    def test_versioning_connection_error_wrapped(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.list_buckets.return_value = {"Buckets": [{"Name": "finance"}]}
        client.get_bucket_versioning.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.test")

        with pytest.raises(StoreError, match="Failed to read versioning for finance"):
            s3_store.list_collections()

    def test_list_buckets_error_wrapped(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.list_buckets.side_effect = _client_error("AccessDenied", "Access Denied", "ListBuckets")

        with pytest.raises(StoreError) as exc_info:
            s3_store.list_collections()

        assert exc_info.value.code == "AccessDenied"


class TestItems:
    def test_iter_item_pages(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        paginator = MagicMock()
        client.get_paginator.return_value = paginator
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "reports/", "Size": 0}, {"Key": "reports/q1.xlsx", "Size": 2048, "ETag": '"abc"'}]},
            {"Contents": [{"Key": "readme.txt", "Size": 10}]},
        ]

        pages = list(s3_store.iter_item_pages(Collection(name="finance"), page_size=5000))

        paginator.paginate.assert_called_once_with(Bucket="finance", PaginationConfig={"PageSize": 1000})
        assert [len(p) for p in pages] == [2, 1]
        assert pages[0][0].kind == FOLDER
        assert pages[0][1].kind == FILE
        assert pages[0][1].object_id == "abc"
        assert pages[0][1].display_name == "q1.xlsx"
        assert pages[0][1].size == 2048

    def test_page_error_wrapped(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        def pages(**kwargs):
            yield {"Contents": [{"Key": "a"}]}
            raise _client_error("InternalError")

        paginator = MagicMock()
        paginator.paginate.side_effect = pages
        client.get_paginator.return_value = paginator

        iterator = s3_store.iter_item_pages(Collection(name="finance"), page_size=100)
        assert len(next(iterator)) == 1
        with pytest.raises(StoreError):
            next(iterator)


class TestVersions:
    def test_list_versions_orders_and_labels(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        paginator = MagicMock()
        client.get_paginator.return_value = paginator
        paginator.paginate.return_value = [
            {
                "Versions": [
                    {
                        "Key": "reports/q1.xlsx",
                        "VersionId": "v3",
                        "LastModified": datetime(2026, 3, 1, tzinfo=timezone.utc),
                        "IsLatest": True,
                        "Size": 30,
                    },
                    {
                        "Key": "reports/q1.xlsx.bak",
                        "VersionId": "other",
                        "LastModified": datetime(2026, 1, 1, tzinfo=timezone.utc),
                        "IsLatest": True,
                        "Size": 99,
                    },
                    {
                        "Key": "reports/q1.xlsx",
                        "VersionId": "v1",
                        "LastModified": datetime(2026, 1, 1, tzinfo=timezone.utc),
                        "IsLatest": False,
                        "Size": 10,
                    },
                    {
                        "Key": "reports/q1.xlsx",
                        "VersionId": "v2",
                        "LastModified": datetime(2026, 2, 1, tzinfo=timezone.utc),
                        "IsLatest": False,
                        "Size": 20,
                    },
                ]
            }
        ]

        versions = s3_store.list_versions(_item())

        paginator.paginate.assert_called_once_with(Bucket="finance", Prefix="reports/q1.xlsx")
        assert [(v.version_id, v.label, v.is_current) for v in versions] == [
            ("v1", "1", False),
            ("v2", "2", False),
            ("v3", "3", True),
        ]

    def test_delete_versions_quiet_request(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.delete_objects.return_value = {}

        failures = s3_store.delete_versions(_item(), [_version("v1"), _version("v2")])

        assert failures == []
        client.delete_objects.assert_called_once_with(
            Bucket="finance",
            Delete={
                "Objects": [
                    {"Key": "reports/q1.xlsx", "VersionId": "v1"},
                    {"Key": "reports/q1.xlsx", "VersionId": "v2"},
                ],
                "Quiet": True,
            },
        )

    def test_delete_versions_reports_per_key_errors(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.delete_objects.return_value = {
            "Errors": [
                {
                    "Key": "reports/q1.xlsx",
                    "VersionId": "v2",
                    "Code": "AccessDenied",
                    "Message": "Access Denied because object protected by object lock.",
                }
            ]
        }

        failures = s3_store.delete_versions(_item(), [_version("v1"), _version("v2")])

        assert failures == [
            DeleteFailure("v2", "AccessDenied", "Access Denied because object protected by object lock.")
        ]
        assert failures[0].is_policy_blocked is True

    def test_delete_request_error_wrapped(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.delete_objects.side_effect = _client_error("SlowDown", "Please reduce your request rate")

        with pytest.raises(StoreError) as exc_info:
            s3_store.delete_versions(_item(), [_version("v1")])

        assert exc_info.value.code == "SlowDown"

    def test_delete_rejects_oversized_request(self, s3_store: S3VersionStore) -> None:
        with pytest.raises(ValueError):
            s3_store.delete_versions(_item(), [_version(str(i)) for i in range(1001)])

    def test_collection_size_counts_all_versions(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        paginator = MagicMock()
        client.get_paginator.return_value = paginator
        paginator.paginate.return_value = [
            {"Versions": [{"Size": 100}, {"Size": 200}]},
            {"Versions": [{"Size": 50}], "DeleteMarkers": [{"Key": "gone"}]},
        ]

        assert s3_store.collection_size(Collection(name="finance")) == 350


class TestRetentionPolicy:
    def test_reads_policy_document(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        changed = datetime(2026, 10, 17, 11, 0, tzinfo=timezone.utc)
        client.get_object.return_value = {
            "Body": io.BytesIO(json.dumps({"AutoExpirationEnabled": True, "ExpireAfterDays": 365}).encode()),
            "LastModified": changed,
        }

        policy = s3_store.get_retention_policy()

        client.get_object.assert_called_once_with(Bucket="acme-policy", Key="retention-policy.json")
        assert policy.auto_expiration_enabled is True
        assert policy.expire_after_days == 365
        assert policy.max_major_versions is None
        assert policy.last_modified_utc == changed

    def test_missing_policy_document(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.get_object.side_effect = _client_error("NoSuchKey")

        assert s3_store.get_retention_policy() is None

    def test_no_policy_bucket(self, client: MagicMock) -> None:
        assert S3VersionStore(client).get_retention_policy() is None
        client.get_object.assert_not_called()

    def test_policy_read_error(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.get_object.side_effect = _client_error("AccessDenied")

        with pytest.raises(StoreError):
            s3_store.get_retention_policy()

    def test_policy_connection_error_wrapped(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        client.get_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.test")

        with pytest.raises(StoreError, match="Failed to read retention policy"):
            s3_store.get_retention_policy()

    @pytest.mark.parametrize("body", [b"{not json", b"[1, 2]"])
    def test_malformed_policy_document(self, s3_store: S3VersionStore, client: MagicMock, body: bytes) -> None:
        client.get_object.return_value = {
            "Body": io.BytesIO(body),
            "LastModified": datetime(2026, 10, 1, tzinfo=timezone.utc),
        }

        with pytest.raises(StoreError, match="Failed to read retention policy"):
            s3_store.get_retention_policy()

    def test_update_policy(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        changed = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
        client.head_object.return_value = {"LastModified": changed}

        updated = s3_store.update_retention_policy(RetentionPolicy(max_major_versions=50))

        body = json.loads(client.put_object.call_args.kwargs["Body"])
        assert body == {"AutoExpirationEnabled": False, "MaxMajorVersions": 50, "ExpireAfterDays": None}
        assert updated.last_modified_utc == changed

    def test_update_rejects_invalid_policy(self, s3_store: S3VersionStore, client: MagicMock) -> None:
        with pytest.raises(ValueError):
            s3_store.update_retention_policy(RetentionPolicy(expire_after_days=-1))

        client.put_object.assert_not_called()


def test_base_url_from_client(s3_store: S3VersionStore) -> None:
    assert s3_store.base_url == "https://s3.us-east-1.amazonaws.com"
