"""
Exclusion set: every item the user has viewed, favorited or interacted with.
"""

import asyncio
from typing import FrozenSet

from ..sources import FavoritesSource, HistorySource, InteractionSource


async def build_exclusion_set(
    user_id: str,
    history: HistorySource,
    favorites: FavoritesSource,
    interactions: InteractionSource,
) -> FrozenSet[str]:
    """Union of item ids across the three sources; any read failure propagates."""
    viewed, favorited, interacted = await asyncio.gather(
        history.item_ids_for_user(user_id),
        favorites.item_ids_for_user(user_id),
        interactions.item_ids_for_user(user_id),
    )
    return frozenset(viewed) | frozenset(favorited) | frozenset(interacted)
