"""boto3 client creation for the object store session."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

# Floor for the request timeout so large batched deletes are not cut off
MIN_TIMEOUT_SECONDS = 300
CONNECT_TIMEOUT_SECONDS = 30


def session_timeout(max_batch_minutes: int) -> int:
    """Request timeout for the run: the batch window or the floor, whichever is longer."""
    return max(max_batch_minutes * 60, MIN_TIMEOUT_SECONDS)


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    timeout_seconds: int = MIN_TIMEOUT_SECONDS,
) -> Any:
    """Create a boto3 client shared by the whole run.

    botocore's own retries are limited to a single attempt; chunk-level
    retries are handled by the trimmer's retry policy.

    Args:
        service_name: AWS service name (e.g. "s3")
        region_name: Region (optional)
        profile_name: AWS profile name (optional)
        endpoint_url: Custom endpoint for S3-compatible stores (optional)
        timeout_seconds: Read timeout for each request

    Returns:
        boto3 client
    """
    session = boto3.session.Session(profile_name=profile_name, region_name=region_name)
    config = Config(
        read_timeout=timeout_seconds,
        connect_timeout=CONNECT_TIMEOUT_SECONDS,
        retries={"max_attempts": 1, "mode": "standard"},
    )

    logger.debug(f"Creating {service_name} client (region={region_name}, endpoint={endpoint_url}, timeout={timeout_seconds}s)")
    return session.client(service_name, endpoint_url=endpoint_url, config=config)
