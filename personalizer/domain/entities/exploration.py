"""
Anti-repetition and exploration state kept per user.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .blocklist import parse_datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """A recently shown value stamped with when it was shown."""

    value: Union[str, List[str]]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, list) else self.value
        return {"value": value, "timestamp": self.timestamp.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(value=data.get("value", ""), timestamp=parse_datetime(data.get("timestamp")))


@dataclass
class AntiRepetitionCache:
    """Rolling per-dimension record of what was recently shown."""

    user_id: str
    color_combos: List[CacheEntry] = field(default_factory=list)
    styles: List[CacheEntry] = field(default_factory=list)
    occasions: List[CacheEntry] = field(default_factory=list)
    last_updated: datetime = field(default_factory=_utcnow)

    def to_document(self) -> Dict[str, Any]:
        return {
            "color_combos": [e.to_dict() for e in self.color_combos],
            "styles": [e.to_dict() for e in self.styles],
            "occasions": [e.to_dict() for e in self.occasions],
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_document(cls, user_id: str, document: Dict[str, Any]) -> "AntiRepetitionCache":
        return cls(
            user_id=user_id,
            color_combos=[CacheEntry.from_dict(e) for e in document.get("color_combos") or []],
            styles=[CacheEntry.from_dict(e) for e in document.get("styles") or []],
            occasions=[CacheEntry.from_dict(e) for e in document.get("occasions") or []],
            last_updated=parse_datetime(document.get("last_updated")),
        )


@dataclass
class ExplorationMetrics:
    """Outcome counters for exploratory picks and the adaptive level."""

    user_id: str
    shown: int = 0
    liked: int = 0
    worn: int = 0
    success_rate: float = 0.0
    adaptive_level: int = 10
    last_adjusted: datetime = field(default_factory=_utcnow)

    def to_document(self) -> Dict[str, Any]:
        return {
            "shown": self.shown,
            "liked": self.liked,
            "worn": self.worn,
            "success_rate": self.success_rate,
            "adaptive_level": self.adaptive_level,
            "last_adjusted": self.last_adjusted.isoformat(),
        }

    @classmethod
    def from_document(cls, user_id: str, document: Dict[str, Any], default_level: int = 10) -> "ExplorationMetrics":
        return cls(
            user_id=user_id,
            shown=int(document.get("shown") or 0),
            liked=int(document.get("liked") or 0),
            worn=int(document.get("worn") or 0),
            success_rate=float(document.get("success_rate") or 0.0),
            adaptive_level=int(document.get("adaptive_level") or default_level),
            last_adjusted=parse_datetime(document.get("last_adjusted")),
        )


@dataclass
class PatternLockStatus:
    """Derived each call from current preference weights; never persisted."""

    user_id: str
    is_locked: bool
    force_exploration_percentage: int
    color_concentration: float = 0.0
    style_concentration: float = 0.0
    lock_reason: Optional[str] = None
    dominant_color: Optional[str] = None
    dominant_style: Optional[str] = None
