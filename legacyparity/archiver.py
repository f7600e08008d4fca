"""Artifact archival and retrieval handles"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional
import logging

from legacyparity.config import STORAGE_CONFIG
from legacyparity.errors import ArchivalError, StorageAccessError

logger = logging.getLogger(__name__)


@dataclass
class ArchivedArtifact:
    """An archived object and its time-bounded retrieval URL"""
    key: str
    retrieval_url: Optional[str]
    expiry: timedelta

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "key": self.key,
            "retrieval_url": self.retrieval_url,
            "expiry_seconds": int(self.expiry.total_seconds()),
        }


def build_archive_key(category: str, task_id: str, timestamp: int, ext: str) -> str:
    """
    Deterministic archive key: {category}/{task_id}_{timestamp}.{ext}

    Distinct task ids never collide; within a category keys of the same
    task sort by submission time.
    """
    return f"{category}/{task_id}_{timestamp}.{ext}"


class ArtifactArchiver:
    """Write artifacts to the task's bucket and presign them for download"""

    def __init__(self, store, bucket: str, ttl_seconds: int = None):
        self.store = store
        self.bucket = bucket
        self.expiry = timedelta(seconds=ttl_seconds or STORAGE_CONFIG["presign_ttl_seconds"])

    def archive(self, content: str, category: str, task_id: str, timestamp: int,
                ext: str) -> ArchivedArtifact:
        """
        Store one artifact and issue its retrieval URL.

        Raises:
            ArchivalError: if the object could not be written. A failure to
                presign is not an error; the artifact is returned with
                retrieval_url=None.
        """
        key = build_archive_key(category, task_id, timestamp, ext)
        logger.info(f"Saving to S3: {key}")

        try:
            self.store.put(self.bucket, key, content.encode("utf-8"))
        except StorageAccessError as e:
            raise ArchivalError(f"Could not archive {key}: {e}") from e

        try:
            url = self.store.presign_get(self.bucket, key, int(self.expiry.total_seconds()))
        except StorageAccessError as e:
            logger.warning(f"Could not issue retrieval URL for {key}: {e}")
            url = None

        return ArchivedArtifact(key=key, retrieval_url=url, expiry=self.expiry)
