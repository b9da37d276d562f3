"""
Interaction model: feedback recorded against recommended items.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

InteractionKind = Literal["click", "dismiss", "not_interested", "completed"]

# Kinds that remove the item from the cached recommendation list immediately.
REMOVING_KINDS = frozenset({"dismiss", "not_interested"})


class Interaction(BaseModel):
    item_id: str
    kind: InteractionKind
    timestamp: datetime
