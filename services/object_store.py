from __future__ import annotations

import asyncio
import logging
from typing import BinaryIO, Dict, Optional

import boto3

logger = logging.getLogger("object_store")


def resolve_endpoint(region: Optional[str], explicit_endpoint: Optional[str] = None) -> str:
    if explicit_endpoint:
        return explicit_endpoint
    if not region:
        raise ValueError("Spaces region not configured. Set SPACES_REGION.")
    return f"https://{region}.digitaloceanspaces.com"


class SpacesObjectStore:
    """
    S3-compatible object storage (DigitalOcean Spaces). boto3 is blocking,
    so uploads run in a worker thread.
    """

    def __init__(self, key: str, secret: str, region: str, endpoint: Optional[str] = None):
        if not key or not secret or not region:
            raise ValueError("Spaces configuration is incomplete. Check SPACES_KEY/SECRET/REGION.")
        self.endpoint = resolve_endpoint(region, endpoint)
        session = boto3.session.Session()
        self.client = session.client(
            "s3",
            region_name=region,
            endpoint_url=self.endpoint,
            aws_access_key_id=key,
            aws_secret_access_key=secret,
        )

    async def put(
        self,
        bucket: str,
        key: str,
        body: BinaryIO,
        *,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
        acl: str = "private",
    ) -> None:
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=bucket,
            Key=key,
            Body=body,
            ACL=acl,
            ContentType=content_type,
            Metadata=metadata or {},
        )
        logger.debug("Stored s3://%s/%s", bucket, key)
