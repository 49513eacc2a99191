"""Example usage of the PersonalizationService.

This script demonstrates a few feedback rounds against a JSON-file
store and prints the diversified picks after each one.
"""

import asyncio
from pathlib import Path

from personalizer.core import PersonalizationService
from personalizer.infrastructure.database import JsonFileStore

USER_ID = "demo-user"

CANDIDATES = [
    {"id": "navy-blazer", "color_palette": ["navy blue", "white"], "style_type": "classic",
     "occasion": "office", "description": "tailored navy blue wool blazer"},
    {"id": "mustard-kurta", "color_palette": ["mustard", "beige"], "style_type": "ethnic",
     "occasion": "festive", "description": "cotton kurta"},
    {"id": "red-dress", "color_palette": ["red", "black"], "style_type": "elegant",
     "occasion": "party", "description": "silk slip dress"},
    {"id": "olive-jacket", "color_palette": ["olive", "cream"], "style_type": "boho",
     "occasion": "casual", "description": "printed linen jacket"},
    {"id": "grey-suit", "color_palette": ["grey", "white"], "style_type": "formal",
     "occasion": "office", "description": "slim fit striped suit"},
]


def print_picks(title, picks):
    print("=" * 60)
    print(title)
    print("=" * 60)
    for position, match in enumerate(picks, start=1):
        print(f"  {position}. {match.outfit_id:<14} {match.match_score:>3}  "
              f"{match.category.value:<9} {match.explanation}")
    print()


async def run(store_dir: Path):
    service = PersonalizationService(JsonFileStore(store_dir))

    # Example 1: A user with no history gets non-personalized picks
    picks = await service.score_and_diversify(CANDIDATES, USER_ID, occasion="office")
    print_picks("Example 1: First visit", picks)

    # Example 2: Feedback shapes the next round
    await service.on_wear(USER_ID, CANDIDATES[0], occasion="office")
    await service.on_like(USER_ID, CANDIDATES[4])
    await service.on_ignore_session(USER_ID, [CANDIDATES[1], CANDIDATES[3]])
    await service.on_shopping_click(USER_ID, "myntra", "blazer", 2499.0)

    context = await service.get_personalization_context(USER_ID, occasion="office")
    print("Preferences after feedback:")
    for key, value in context.preferences.summary().items():
        print(f"  {key:<14} {value}")
    print(f"  exploration    {context.exploration_level}%")
    print()

    picks = await service.score_and_diversify(CANDIDATES, USER_ID, occasion="office")
    print_picks("Example 2: After feedback", picks)


def main():
    """Run the personalization example."""
    store_dir = Path("data/personalizer_store")
    print(f"Using JSON store at {store_dir}\n")
    asyncio.run(run(store_dir))


if __name__ == "__main__":
    main()
