"""
Three-tier negative preference model.

- hard: permanent, explicit veto (colors, styles, patterns, fits)
- soft: accumulating deprioritization from ignored sessions (colors, styles)
- temporary: time-boxed record of recently recommended color combinations
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


HARD_DIMENSIONS = ("colors", "styles", "patterns", "fits")
SOFT_DIMENSIONS = ("colors", "styles")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any, default: Optional[datetime] = None) -> datetime:
    """Parse an ISO string or datetime into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        return default or _utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class BlocklistItem:
    """A blocked value with the reason it was added."""

    value: str
    reason: str = "User preference"
    added_at: datetime = field(default_factory=_utcnow)
    count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "value": self.value,
            "reason": self.reason,
            "added_at": self.added_at.isoformat(),
        }
        if self.count is not None:
            data["count"] = self.count
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "BlocklistItem":
        if isinstance(data, str):
            return cls(value=data)
        count = data.get("count")
        return cls(
            value=str(data.get("value", "")),
            reason=data.get("reason") or "User preference",
            added_at=parse_datetime(data.get("added_at")),
            count=int(count) if count is not None else None,
        )


@dataclass
class TemporaryBlockItem:
    """A recently recommended color combination and its expiry."""

    color_combination: str
    style_keywords: List[str] = field(default_factory=list)
    recommended_at: datetime = field(default_factory=_utcnow)
    expires_at: datetime = field(default_factory=_utcnow)

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "color_combination": self.color_combination,
            "style_keywords": list(self.style_keywords),
            "recommended_at": self.recommended_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemporaryBlockItem":
        return cls(
            color_combination=str(data.get("color_combination", "")),
            style_keywords=list(data.get("style_keywords") or []),
            recommended_at=parse_datetime(data.get("recommended_at")),
            expires_at=parse_datetime(data.get("expires_at")),
        )


def _empty_tier(dimensions: tuple) -> Dict[str, List[BlocklistItem]]:
    return {dimension: [] for dimension in dimensions}


@dataclass
class Blocklists:
    """
    Container for all three tiers.

    A value appears in at most one of hard/soft for a given dimension.
    """

    hard: Dict[str, List[BlocklistItem]] = field(default_factory=lambda: _empty_tier(HARD_DIMENSIONS))
    soft: Dict[str, List[BlocklistItem]] = field(default_factory=lambda: _empty_tier(SOFT_DIMENSIONS))
    temporary: List[TemporaryBlockItem] = field(default_factory=list)

    def active_temporary(self, now: datetime) -> List[TemporaryBlockItem]:
        return [item for item in self.temporary if item.is_active(now)]

    def to_document(self) -> Dict[str, Any]:
        return {
            "hard": {dim: [i.to_dict() for i in items] for dim, items in self.hard.items()},
            "soft": {dim: [i.to_dict() for i in items] for dim, items in self.soft.items()},
            "temporary": [i.to_dict() for i in self.temporary],
        }

    @classmethod
    def from_document(cls, document: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> "Blocklists":
        """
        Rebuild blocklists from a stored document.

        When ``now`` is given, expired temporary entries are skipped.
        """
        document = document or {}
        hard_doc = document.get("hard") or {}
        soft_doc = document.get("soft") or {}

        blocklists = cls()
        for dimension in HARD_DIMENSIONS:
            blocklists.hard[dimension] = [BlocklistItem.from_dict(i) for i in hard_doc.get(dimension) or []]
        for dimension in SOFT_DIMENSIONS:
            blocklists.soft[dimension] = [BlocklistItem.from_dict(i) for i in soft_doc.get(dimension) or []]

        temporary = [TemporaryBlockItem.from_dict(i) for i in document.get("temporary") or []]
        if now is not None:
            temporary = [item for item in temporary if item.is_active(now)]
        blocklists.temporary = temporary
        return blocklists


@dataclass
class FilterResult:
    """Outcome of the hard gate for one candidate."""

    passes: bool
    reason: Optional[str] = None
    hard_blocked: bool = False
