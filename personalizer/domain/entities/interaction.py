"""
Interaction records: immutable facts about one user action.

Each kind of action carries only the fields relevant to it. Records are
validated with pydantic when they cross the store boundary, so malformed
log entries are rejected before they reach the aggregator.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class InteractionKind(str, Enum):
    """Partitions of the append-only interaction log."""

    LIKED = "liked"
    WORN = "worn"
    IGNORED = "ignored"
    SHOPPING_CLICK = "shopping_click"


# Signal strength per interaction kind, applied as weight x recency.
SIGNAL_WEIGHTS: Dict[InteractionKind, float] = {
    InteractionKind.LIKED: 2.0,
    InteractionKind.WORN: 5.0,
    InteractionKind.IGNORED: -0.5,
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OutfitSnapshot(BaseModel):
    """The outfit's attributes as they were when the user acted."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    colors: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("colors", "color_palette", "colorPalette"),
    )
    style: str = Field(default="", validation_alias=AliasChoices("style", "style_type", "styleType"))
    occasion: str = ""
    items: List[str] = Field(default_factory=list)
    description: str = ""

    @field_validator("style", "occasion", "description", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class _InteractionBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken to be UTC."""
        return _as_utc(v)


class LikedInteraction(_InteractionBase):
    kind: Literal["liked"] = "liked"
    outfit: OutfitSnapshot


class WornInteraction(_InteractionBase):
    kind: Literal["worn"] = "worn"
    outfit: OutfitSnapshot


class IgnoredSessionInteraction(_InteractionBase):
    """A session in which every presented outfit was ignored."""

    kind: Literal["ignored"] = "ignored"
    outfits: List[OutfitSnapshot] = Field(default_factory=list)


class ShoppingClickInteraction(_InteractionBase):
    kind: Literal["shopping_click"] = "shopping_click"
    platform: str = "unknown"
    item: str = ""
    estimated_price: Optional[float] = Field(default=None, ge=0.0)

    @field_validator("platform", mode="before")
    @classmethod
    def default_platform(cls, v: Any) -> Any:
        return v or "unknown"


Interaction = Annotated[
    Union[LikedInteraction, WornInteraction, IgnoredSessionInteraction, ShoppingClickInteraction],
    Field(discriminator="kind"),
]

_interaction_adapter: TypeAdapter = TypeAdapter(Interaction)


def parse_interaction(data: Dict[str, Any]) -> Interaction:
    """
    Validate a raw log record into its tagged interaction type.

    Raises:
        pydantic.ValidationError: If the record does not match any kind.
    """
    return _interaction_adapter.validate_python(data)


def interaction_to_record(interaction: Interaction) -> Dict[str, Any]:
    """Serialize an interaction into a JSON-compatible log record."""
    return interaction.model_dump(mode="json")
