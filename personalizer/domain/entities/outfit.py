"""
OutfitCandidate entity representing one generated outfit suggestion.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class OutfitCandidate:
    """
    A candidate outfit produced by the external generator.

    Candidates are never rejected for missing data: an outfit without
    colors or style is still scored, using neutral values for the
    missing dimension.
    """

    id: str
    colors: List[str] = field(default_factory=list)
    style: str = ""
    occasion: str = ""
    items: List[str] = field(default_factory=list)
    description: str = ""
    title: str = ""

    def __post_init__(self) -> None:
        """Coerce loosely typed fields into their declared shapes."""
        if not self.id:
            self.id = uuid.uuid4().hex
        self.colors = [str(c) for c in (self.colors or []) if c]
        self.items = [str(i) for i in (self.items or []) if i]
        self.style = (self.style or "").strip()
        self.occasion = (self.occasion or "").strip()
        self.description = self.description or ""
        self.title = self.title or ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutfitCandidate":
        """
        Build a candidate from a generator payload.

        Accepts the palette under ``colors``, ``color_palette`` or
        ``colorPalette`` and the style under ``style``, ``style_type``
        or ``styleType``.
        """
        colors: List[str] = []
        for key in ("color_palette", "colorPalette", "colors"):
            value = data.get(key)
            if isinstance(value, list):
                colors.extend(str(c) for c in value if c)

        style = data.get("style_type") or data.get("styleType") or data.get("style") or ""
        items = data.get("items") if isinstance(data.get("items"), list) else []

        return cls(
            id=str(data.get("id") or ""),
            colors=list(dict.fromkeys(colors)),
            style=str(style),
            occasion=str(data.get("occasion") or ""),
            items=items,
            description=str(data.get("description") or ""),
            title=str(data.get("title") or ""),
        )

    def to_snapshot(self) -> Dict[str, Any]:
        """Return the attributes recorded alongside an interaction."""
        return {
            "colors": list(self.colors),
            "style": self.style,
            "occasion": self.occasion,
            "items": list(self.items),
            "description": self.description or self.title,
        }

    @property
    def text(self) -> str:
        """Lowercased free text used for keyword extraction."""
        return f"{self.description} {self.title}".strip().lower()

    def has_colors(self) -> bool:
        return bool(self.colors or self.items)

    def has_style(self) -> bool:
        return bool(self.style)

    def label(self) -> Optional[str]:
        return self.title or self.style or None
