from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np


@dataclass(frozen=True, eq=False)
class Reference:
    name: str
    image: np.ndarray  # (S,S,4) uint8 RGBA


@dataclass(frozen=True)
class AttendanceEntry:
    name: str
    timestamp: int  # ms since epoch


@dataclass(frozen=True)
class MatchResult:
    name: str
    distance: float


class VerificationStatus(str, Enum):
    MATCHED = "matched"
    REJECTED = "rejected"
    NO_REFERENCES = "no_references"
    DECODE_ERROR = "decode_error"


@dataclass(frozen=True)
class VerificationResult:
    """
    Outcome of a single verify() call.

    MATCHED carries name, distance and the ledger timestamp; REJECTED carries the
    near-miss candidate in name and its distance; DECODE_ERROR carries error.
    """
    status: VerificationStatus
    name: Optional[str] = None
    distance: Optional[float] = None
    timestamp: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is VerificationStatus.MATCHED

    @property
    def candidate(self) -> Optional[str]:
        return self.name if self.status is VerificationStatus.REJECTED else None

    @classmethod
    def matched(cls, name: str, distance: float, timestamp: int) -> "VerificationResult":
        return cls(VerificationStatus.MATCHED, name=name, distance=distance, timestamp=timestamp)

    @classmethod
    def rejected(cls, candidate: str, distance: float) -> "VerificationResult":
        return cls(VerificationStatus.REJECTED, name=candidate, distance=distance)

    @classmethod
    def no_references(cls) -> "VerificationResult":
        return cls(VerificationStatus.NO_REFERENCES)

    @classmethod
    def decode_error(cls, error: str) -> "VerificationResult":
        return cls(VerificationStatus.DECODE_ERROR, error=error)
