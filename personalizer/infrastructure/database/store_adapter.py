"""
Store adapter enforcing the engine's read and write policies.

Reads are bounded by a timeout and converted into result values
(``Ok`` / ``NotFound`` / ``StoreFailure``) so callers can degrade to
defaults without handling exceptions. Writes are validated with pydantic
before persistence and retried on transient failures.

Example:
    >>> adapter = StoreAdapter(InMemoryPreferenceStore())
    >>> result = await adapter.read_blocklists("user-1")
    >>> if isinstance(result, Ok):
    ...     document = result.value
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from personalizer.domain.entities.interaction import (
    Interaction,
    InteractionKind,
    interaction_to_record,
    parse_interaction,
)
from personalizer.domain.interfaces.store_interface import (
    NotFound,
    Ok,
    PreferenceStoreInterface,
    StoreFailure,
    StoreResult,
)
from personalizer.infrastructure.database.retry import RetryPolicy
from personalizer.utils.config import StoreConfig, get_config
from personalizer.utils.exceptions import (
    InvalidTokenError,
    PreferenceValidationError,
    StoreError,
    StoreTimeoutError,
    StoreUnavailableError,
)
from personalizer.utils.logger import get_logger, log_exception
from personalizer.utils.validators import (
    BLOCK_DIMENSIONS,
    CONFIDENCE_LEVELS,
    SOFT_DIMENSIONS,
    validate_token,
)

logger = get_logger(__name__)


# ============================================
# Write-path document schemas
# ============================================


def _check_tokens(values: List[str], kind: str) -> List[str]:
    for value in values:
        validate_token(value, kind=kind)
    return values


class OccasionPreferenceModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    preferred_colors: List[str] = Field(default_factory=list)
    preferred_items: List[str] = Field(default_factory=list)
    notes: str = ""

    @field_validator("preferred_colors")
    @classmethod
    def check_colors(cls, v: List[str]) -> List[str]:
        return _check_tokens(v, "color")


class PlatformClicksModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    count: int = Field(default=0, ge=0)
    items: List[str] = Field(default_factory=list)


class PriceRangeModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min: float = Field(ge=0.0)
    max: float = Field(ge=0.0)

    @model_validator(mode="after")
    def check_order(self) -> "PriceRangeModel":
        if self.min > self.max:
            raise ValueError("price_range.min must not exceed price_range.max")
        return self


class PreferenceUpdate(BaseModel):
    """Schema for partial updates of the preference document."""

    model_config = ConfigDict(extra="forbid")

    color_weights: Optional[Dict[str, float]] = None
    style_weights: Optional[Dict[str, float]] = None
    proven_combinations: Optional[List[List[str]]] = None
    occasion_preferences: Optional[Dict[str, OccasionPreferenceModel]] = None
    seasonal_preferences: Optional[Dict[str, List[str]]] = None
    shopping_clicks: Optional[Dict[str, PlatformClicksModel]] = None
    price_range: Optional[PriceRangeModel] = None
    total_likes: Optional[int] = Field(default=None, ge=0)
    total_selections: Optional[int] = Field(default=None, ge=0)
    overall_confidence: Optional[int] = None
    updated_at: Optional[str] = None

    @field_validator("color_weights")
    @classmethod
    def check_color_keys(cls, v: Optional[Dict[str, float]]) -> Optional[Dict[str, float]]:
        if v is not None:
            _check_tokens(list(v), "color")
        return v

    @field_validator("style_weights")
    @classmethod
    def check_style_keys(cls, v: Optional[Dict[str, float]]) -> Optional[Dict[str, float]]:
        if v is not None:
            _check_tokens(list(v), "style")
        return v

    @field_validator("occasion_preferences")
    @classmethod
    def check_occasion_keys(cls, v):
        if v is not None:
            _check_tokens(list(v), "occasion")
        return v

    @field_validator("proven_combinations")
    @classmethod
    def check_combinations(cls, v: Optional[List[List[str]]]) -> Optional[List[List[str]]]:
        for combo in v or []:
            _check_tokens(combo, "color")
        return v

    @field_validator("seasonal_preferences")
    @classmethod
    def check_seasons(cls, v: Optional[Dict[str, List[str]]]) -> Optional[Dict[str, List[str]]]:
        for season, colors in (v or {}).items():
            if season not in ("summer", "winter", "monsoon"):
                raise ValueError(f"Unknown season '{season}'")
            _check_tokens(colors, "color")
        return v

    @field_validator("overall_confidence")
    @classmethod
    def check_confidence(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in CONFIDENCE_LEVELS:
            raise ValueError(f"Confidence must be one of {list(CONFIDENCE_LEVELS)}")
        return v


class BlocklistItemModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: str
    reason: str = "User preference"
    added_at: str
    count: Optional[int] = Field(default=None, ge=0)

    @field_validator("value")
    @classmethod
    def check_value(cls, v: str) -> str:
        validate_token(v, kind="blocklist")
        return v


class TemporaryBlockModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    color_combination: str
    style_keywords: List[str] = Field(default_factory=list)
    recommended_at: str
    expires_at: str


class BlocklistUpdate(BaseModel):
    """Schema for partial updates of the blocklist document."""

    model_config = ConfigDict(extra="forbid")

    hard: Optional[Dict[str, List[BlocklistItemModel]]] = None
    soft: Optional[Dict[str, List[BlocklistItemModel]]] = None
    temporary: Optional[List[TemporaryBlockModel]] = None

    @field_validator("hard")
    @classmethod
    def check_hard_dimensions(cls, v):
        for dimension in v or {}:
            if dimension not in BLOCK_DIMENSIONS:
                raise ValueError(f"Unknown hard blocklist dimension '{dimension}'")
        return v

    @field_validator("soft")
    @classmethod
    def check_soft_dimensions(cls, v):
        for dimension in v or {}:
            if dimension not in SOFT_DIMENSIONS:
                raise ValueError(f"Unknown soft blocklist dimension '{dimension}'")
        return v


class CacheEntryModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: str | List[str]
    timestamp: str


class AntiRepetitionDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    color_combos: List[CacheEntryModel] = Field(default_factory=list)
    styles: List[CacheEntryModel] = Field(default_factory=list)
    occasions: List[CacheEntryModel] = Field(default_factory=list)
    last_updated: str


class ExplorationMetricsDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    shown: int = Field(ge=0)
    liked: int = Field(ge=0)
    worn: int = Field(ge=0)
    success_rate: float = Field(ge=0.0)
    adaptive_level: int = Field(ge=0, le=100)
    last_adjusted: str


def _validate(model: type[BaseModel], document: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """Validate a pending write, raising PreferenceValidationError on failure."""
    try:
        validated = model.model_validate(document)
    except InvalidTokenError as e:
        raise PreferenceValidationError(e.message, field=e.context.get("kind"), value=e.context.get("token")) from e
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise PreferenceValidationError(
            f"Rejected {model.__name__} for {user_id}: {first.get('msg')}",
            field=field or None,
            value=first.get("input"),
        ) from e
    return validated.model_dump(mode="json", exclude_unset=True)


# ============================================
# Adapter
# ============================================


class StoreAdapter:
    """
    Policy layer between the engine and a PreferenceStoreInterface.

    Attributes:
        store: The underlying document store.
        timeout: Per-operation timeout in seconds.
        retry_policy: Backoff policy for transient write failures.
    """

    def __init__(
        self,
        store: PreferenceStoreInterface,
        config: Optional[StoreConfig] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.store = store
        self.config = config or get_config().store
        self.timeout = self.config.timeout_seconds
        self.retry_policy = retry_policy or RetryPolicy.from_config(self.config)

    async def _bounded(
        self,
        factory: Callable[[], Awaitable[Any]],
        collection: str,
        user_id: str,
    ) -> Any:
        try:
            return await asyncio.wait_for(factory(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StoreTimeoutError(
                f"{collection} operation exceeded {self.timeout}s",
                timeout=self.timeout,
                collection=collection,
                user_id=user_id,
            ) from e

    async def _read(
        self,
        factory: Callable[[], Awaitable[Any]],
        collection: str,
        user_id: str,
    ) -> StoreResult:
        try:
            data = await self._bounded(factory, collection, user_id)
        except StoreError as e:
            logger.warning(f"Read of {collection} failed for {user_id}, degrading: {e}")
            return StoreFailure(e)
        except Exception as e:
            log_exception(logger, f"read {collection} for {user_id}", e)
            return StoreFailure(
                StoreUnavailableError(str(e), collection=collection, user_id=user_id)
            )

        if data is None:
            return NotFound(collection)
        return Ok(data)

    async def _write(
        self,
        factory: Callable[[], Awaitable[Any]],
        collection: str,
        user_id: str,
    ) -> None:
        await self.retry_policy.run(
            lambda: self._bounded(factory, collection, user_id),
            collection=collection,
            user_id=user_id,
        )

    # ---------------- reads ----------------

    async def read_preferences(self, user_id: str) -> StoreResult:
        return await self._read(lambda: self.store.read_preferences(user_id), "preferences", user_id)

    async def read_blocklists(self, user_id: str) -> StoreResult:
        return await self._read(lambda: self.store.read_blocklists(user_id), "blocklists", user_id)

    async def read_anti_repetition_cache(self, user_id: str) -> StoreResult:
        return await self._read(
            lambda: self.store.read_anti_repetition_cache(user_id), "anti_repetition", user_id
        )

    async def read_exploration_metrics(self, user_id: str) -> StoreResult:
        return await self._read(
            lambda: self.store.read_exploration_metrics(user_id), "exploration_metrics", user_id
        )

    async def read_interactions(self, user_id: str, kind: InteractionKind, limit: int) -> StoreResult:
        """
        Read and validate the most recent records of one kind.

        Records that fail validation are skipped with a warning.

        Returns:
            Ok(list of interactions), or StoreFailure.
        """
        result = await self._read(
            lambda: self.store.read_interaction_log(user_id, kind.value, limit, newest_first=True),
            f"interactions/{kind.value}",
            user_id,
        )
        if isinstance(result, StoreFailure):
            return result
        if isinstance(result, NotFound):
            return Ok([])

        interactions: List[Interaction] = []
        for record in result.value:
            try:
                interactions.append(parse_interaction({"kind": kind.value, **record}))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {kind.value} record for {user_id}: {e.error_count()} errors")
        return Ok(interactions)

    # ---------------- writes ----------------

    def validate_preference_update(self, user_id: str, update: Dict[str, Any]) -> Dict[str, Any]:
        """Check a preference update against the document schema without writing it."""
        return _validate(PreferenceUpdate, update, user_id)

    async def write_preferences(self, user_id: str, update: Dict[str, Any]) -> None:
        """
        Validate and merge a preference update.

        Raises:
            PreferenceValidationError: If the update violates the schema.
            StoreWriteError: If the write cannot be persisted.
        """
        document = self.validate_preference_update(user_id, update)
        await self._write(lambda: self.store.write_preferences(user_id, document), "preferences", user_id)

    async def write_blocklists(self, user_id: str, update: Dict[str, Any]) -> None:
        document = _validate(BlocklistUpdate, update, user_id)
        await self._write(lambda: self.store.write_blocklists(user_id, document), "blocklists", user_id)

    async def write_anti_repetition_cache(self, user_id: str, cache: Dict[str, Any]) -> None:
        document = _validate(AntiRepetitionDocument, cache, user_id)
        await self._write(
            lambda: self.store.write_anti_repetition_cache(user_id, document), "anti_repetition", user_id
        )

    async def write_exploration_metrics(self, user_id: str, metrics: Dict[str, Any]) -> None:
        document = _validate(ExplorationMetricsDocument, metrics, user_id)
        await self._write(
            lambda: self.store.write_exploration_metrics(user_id, document), "exploration_metrics", user_id
        )

    async def append_interaction(self, user_id: str, interaction: Interaction) -> None:
        record = interaction_to_record(interaction)
        kind = record["kind"]
        await self._write(
            lambda: self.store.append_interaction(user_id, kind, record), f"interactions/{kind}", user_id
        )
