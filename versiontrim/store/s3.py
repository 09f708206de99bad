"""S3 implementation of the versioned object store.

Buckets with versioning enabled are the collections, object keys are the
items and ``list_object_versions`` entries are the versions.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError

from versiontrim.models.collection import DOCUMENT_LIBRARY, FILE, FOLDER, Collection, ObjectItem, ObjectVersion
from versiontrim.models.retention_policy import RetentionPolicy
from versiontrim.store.base import DeleteFailure, StoreError, VersionStore

logger = logging.getLogger(__name__)

# Buckets created by AWS tooling rather than users
DEFAULT_SYSTEM_PREFIXES = ("aws-", "cdk-", "cf-templates-", "elasticbeanstalk-")

# Buckets without versioning hold no history and are a different collection class
UNVERSIONED = "unversioned_bucket"

# AWS S3 limit for delete_objects and listing page sizes
S3_MAX_KEYS = 1000


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def _wrap(error: Exception, action: str) -> StoreError:
    if isinstance(error, ClientError):
        code = _error_code(error)
        message = error.response.get("Error", {}).get("Message", str(error))
        return StoreError(f"{action}: {code} - {message}", code=code)
    return StoreError(f"{action}: {error}")


class S3VersionStore(VersionStore):
    """Versioned object store backed by S3 (or an S3-compatible service).

    Attributes:
        client: boto3 S3 client, one per run
        system_prefixes: Bucket name prefixes treated as hidden/system
        policy_bucket: Bucket holding the tenant retention policy document
        policy_key: Key of the retention policy document
    """

    def __init__(
        self,
        client: Any,
        system_prefixes: Optional[tuple[str, ...]] = None,
        policy_bucket: Optional[str] = None,
        policy_key: str = "retention-policy.json",
    ) -> None:
        self.client = client
        self.system_prefixes = tuple(system_prefixes) if system_prefixes is not None else DEFAULT_SYSTEM_PREFIXES
        self.policy_bucket = policy_bucket
        self.policy_key = policy_key

    @property
    def base_url(self) -> str:
        return self.client.meta.endpoint_url

    def list_collections(self) -> list[Collection]:
        try:
            buckets = self.client.list_buckets().get("Buckets", [])
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, "Failed to list buckets") from e

        collections = []
        for bucket in buckets:
            name = bucket["Name"]
            hidden = name == self.policy_bucket or name.startswith(self.system_prefixes)
            kind = DOCUMENT_LIBRARY if hidden or self._is_versioned(name) else UNVERSIONED
            collections.append(Collection(name=name, hidden=hidden, kind=kind))

        logger.debug(f"Discovered {len(collections)} buckets at {self.base_url}")
        return collections

    def _is_versioned(self, bucket: str) -> bool:
        try:
            status = self.client.get_bucket_versioning(Bucket=bucket).get("Status")
        except ClientError as e:
            # Buckets we cannot inspect cannot be trimmed either
            logger.debug(f"Cannot read versioning for {bucket}: {_error_code(e)}")
            return False
        except BotoCoreError as e:
            raise _wrap(e, f"Failed to read versioning for {bucket}") from e
        return status in ("Enabled", "Suspended")

    def iter_item_pages(self, collection: Collection, page_size: int) -> Iterator[list[ObjectItem]]:
        paginator = self.client.get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=collection.name,
            PaginationConfig={"PageSize": min(page_size, S3_MAX_KEYS)},
        )

        try:
            for page in pages:
                yield [self._to_item(collection.name, obj) for obj in page.get("Contents", [])]
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, f"Failed to list objects in {collection.name}") from e

    @staticmethod
    def _to_item(bucket: str, obj: dict) -> ObjectItem:
        key = obj["Key"]
        is_folder = key.endswith("/")
        return ObjectItem(
            collection=bucket,
            object_id=obj.get("ETag", key).strip('"'),
            reference=key,
            display_name=key.rstrip("/").rsplit("/", 1)[-1],
            kind=FOLDER if is_folder else FILE,
            size=obj.get("Size", 0),
        )

    def list_versions(self, item: ObjectItem) -> list[ObjectVersion]:
        paginator = self.client.get_paginator("list_object_versions")
        entries = []

        try:
            for page in paginator.paginate(Bucket=item.collection, Prefix=item.reference):
                # Prefix listing also returns longer keys sharing the prefix
                entries.extend(v for v in page.get("Versions", []) if v["Key"] == item.reference)
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, f"Failed to load versions of {item.collection}/{item.reference}") from e

        entries.sort(key=lambda v: v["LastModified"])
        return [
            ObjectVersion(
                version_id=entry["VersionId"],
                label=str(ordinal),
                created_at=entry["LastModified"],
                is_current=bool(entry.get("IsLatest", False)),
                size=entry.get("Size", 0),
            )
            for ordinal, entry in enumerate(entries, start=1)
        ]

    def delete_versions(self, item: ObjectItem, versions: list[ObjectVersion]) -> list[DeleteFailure]:
        if len(versions) > S3_MAX_KEYS:
            raise ValueError(f"Cannot delete more than {S3_MAX_KEYS} versions in one request")

        objects = [{"Key": item.reference, "VersionId": v.version_id} for v in versions]
        try:
            response = self.client.delete_objects(
                Bucket=item.collection,
                Delete={"Objects": objects, "Quiet": True},
            )
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, f"Failed to delete versions of {item.collection}/{item.reference}") from e

        return [
            DeleteFailure(
                version_id=error.get("VersionId", ""),
                code=error.get("Code", "Unknown"),
                message=error.get("Message", ""),
            )
            for error in response.get("Errors", [])
        ]

    def collection_size(self, collection: Collection) -> int:
        paginator = self.client.get_paginator("list_object_versions")
        total = 0

        try:
            for page in paginator.paginate(Bucket=collection.name):
                total += sum(v.get("Size", 0) for v in page.get("Versions", []))
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, f"Failed to measure {collection.name}") from e

        return total

    def get_retention_policy(self) -> Optional[RetentionPolicy]:
        if not self.policy_bucket:
            return None

        try:
            response = self.client.get_object(Bucket=self.policy_bucket, Key=self.policy_key)
            data = json.loads(response["Body"].read())
        except ClientError as e:
            if _error_code(e) in ("NoSuchKey", "404"):
                return None
            raise _wrap(e, "Failed to read retention policy") from e
        except (BotoCoreError, ValueError) as e:
            raise _wrap(e, "Failed to read retention policy") from e

        if not isinstance(data, dict):
            raise StoreError(f"Failed to read retention policy: expected a JSON object in {self.policy_key}")
        return RetentionPolicy.from_dict(data, last_modified_utc=response.get("LastModified"))

    def update_retention_policy(self, policy: RetentionPolicy) -> RetentionPolicy:
        if not self.policy_bucket:
            raise StoreError("No policy bucket configured")

        policy.validate()
        try:
            self.client.put_object(
                Bucket=self.policy_bucket,
                Key=self.policy_key,
                Body=json.dumps(policy.to_dict()).encode("utf-8"),
                ContentType="application/json",
            )
            head = self.client.head_object(Bucket=self.policy_bucket, Key=self.policy_key)
        except (ClientError, BotoCoreError) as e:
            raise _wrap(e, "Failed to update retention policy") from e

        logger.info(f"Retention policy updated in {self.policy_bucket}/{self.policy_key}")
        return RetentionPolicy.from_dict(policy.to_dict(), last_modified_utc=head.get("LastModified"))
