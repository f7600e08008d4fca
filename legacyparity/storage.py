"""Object storage access (S3 via boto3)"""

import os
import threading
from typing import Optional
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from legacyparity.config import STORAGE_CONFIG
from legacyparity.errors import StorageAccessError

logger = logging.getLogger(__name__)


def create_s3_client(region: Optional[str] = None):
    """
    Build an S3 client from STORAGE_CONFIG.

    Explicit credentials are used when AWS_ACCESS_KEY_ID and
    AWS_SECRET_ACCESS_KEY are both set, otherwise boto3's default
    credential chain applies.
    """
    region = region or STORAGE_CONFIG["region"]
    s3_options = {"addressing_style": "path"} if STORAGE_CONFIG["force_path_style"] else {}
    client_kwargs = {
        "region_name": region,
        "config": Config(signature_version="s3v4", s3=s3_options),
    }

    if STORAGE_CONFIG["endpoint_url"]:
        client_kwargs["endpoint_url"] = STORAGE_CONFIG["endpoint_url"]

    access_key = os.getenv("AWS_ACCESS_KEY_ID")
    secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
    if access_key and secret_key:
        client_kwargs["aws_access_key_id"] = access_key
        client_kwargs["aws_secret_access_key"] = secret_key

    logger.info(f"Creating S3 client: region={region}, endpoint={STORAGE_CONFIG['endpoint_url'] or 'default'}")
    # A private Session: the module-level default session is not thread-safe
    session = boto3.session.Session()
    return session.client("s3", **client_kwargs)


class ObjectStore:
    """get / put / presign_get over a single S3 client"""

    def __init__(self, client=None):
        self._client = client
        self._client_lock = threading.Lock()

    @property
    def client(self):
        # Created lazily so constructing a pipeline never needs credentials
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = create_s3_client()
        return self._client

    def get(self, bucket: str, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 GetObject failed for s3://{bucket}/{key}: {e}")
            raise StorageAccessError(f"S3 access denied for s3://{bucket}/{key}: {e}") from e

    def put(self, bucket: str, key: str, data: bytes) -> None:
        try:
            self.client.put_object(Bucket=bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 PutObject failed for s3://{bucket}/{key}: {e}")
            raise StorageAccessError(f"S3 PutObject failed for s3://{bucket}/{key}: {e}") from e

    def presign_get(self, bucket: str, key: str, ttl: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=ttl,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageAccessError(f"Could not presign s3://{bucket}/{key}: {e}") from e
