"""Hard, soft and temporary blocklists."""

from .manager import (
    BlocklistManager,
    is_hard_blocked,
    passes_filters,
    score_with_soft_penalties,
    soft_block_weight,
    soft_weight_for_count,
    was_recently_recommended,
)

__all__ = [
    "BlocklistManager",
    "is_hard_blocked",
    "passes_filters",
    "score_with_soft_penalties",
    "soft_block_weight",
    "soft_weight_for_count",
    "was_recently_recommended",
]
