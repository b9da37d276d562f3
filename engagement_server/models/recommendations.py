"""Recommendation request/response models."""

from pydantic import BaseModel

from recommender.models import InteractionKind


class InteractionRequest(BaseModel):
    item_id: str
    kind: InteractionKind
