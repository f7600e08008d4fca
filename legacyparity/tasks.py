"""Task definitions and source-kind detection"""

from dataclasses import dataclass, asdict
from enum import Enum
from pathlib import PurePosixPath
from typing import Dict
import logging

from legacyparity.config import SOURCE_KINDS
from legacyparity.errors import StorageAccessError

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    """Legacy dialect of a source file, decided by file extension"""
    COBOL = "cobol"
    ASSEMBLER = "assembler"

    @property
    def label(self) -> str:
        return SOURCE_KINDS[self.value]["label"]

    @property
    def validates_behavior(self) -> bool:
        """True if a fixture-execution contract exists for this kind"""
        return SOURCE_KINDS[self.value]["validates_behavior"]

    @classmethod
    def from_key(cls, key: str) -> "SourceKind":
        """
        Detect the source kind from an object key.

        Only the extension is considered. Anything that is not a known
        COBOL extension is treated as Assembler, which is not eligible for
        behavioral validation.
        """
        suffix = PurePosixPath(key).suffix.lower()
        for kind in cls:
            if suffix in SOURCE_KINDS[kind.value]["extensions"]:
                return kind
        return cls.ASSEMBLER


@dataclass(frozen=True)
class SourceLocation:
    """Where the legacy source lives in object storage"""
    bucket: str
    key: str


@dataclass(frozen=True)
class EvaluationTask:
    """One modernization-validation request"""
    task_id: str
    source_location: SourceLocation

    def to_dict(self) -> Dict:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "EvaluationTask":
        """Create from dictionary (the HTTP request body shape)"""
        location = data["source_location"]
        return cls(
            task_id=data["task_id"],
            source_location=SourceLocation(bucket=location["bucket"], key=location["key"]),
        )


@dataclass
class SourceArtifact:
    """Fetched legacy program text"""
    text: str
    kind: SourceKind
    key: str

    @classmethod
    def from_bytes(cls, data: bytes, key: str) -> "SourceArtifact":
        """
        Decode fetched source.

        Raises:
            StorageAccessError: if the object is not valid UTF-8. The legacy
                build must see exactly the stored program.
        """
        kind = SourceKind.from_key(key)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageAccessError(f"Source {key} is not valid UTF-8: {e}") from e
        logger.info(f"Fetched {len(data)} bytes of {kind.label} source from {key}")
        return cls(text=text, kind=kind, key=key)
