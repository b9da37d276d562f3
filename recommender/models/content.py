"""
Content model: catalog summary snapshot for courses and videos.

Every persisted history/favorite/progress entry carries a ContentSummary copied
at write time. Built from catalog payloads via ContentSummary.model_validate(d).
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

ContentType = Literal["course", "video"]

CONTENT_TYPES = ("course", "video")


class ContentSummary(BaseModel):
    """
    Catalog summary of a course or video.

    Only id and type are required so that a bare {id, type} snapshot can be
    stored when the catalog is unavailable.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    type: ContentType = "video"
    title: Optional[str] = ""
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    instructor: Optional[str] = None
    category: Optional[str] = None
    duration_seconds: Optional[float] = None
    parent_course_id: Optional[str] = None

    @classmethod
    def bare(cls, item_id: str, content_type: str = "video") -> "ContentSummary":
        return cls(id=item_id, type=content_type)

    def searchable_fields(self) -> List[str]:
        """Text fields matched by history and favorites search."""
        return [
            f for f in (self.title, self.description, self.instructor, self.category) if f
        ]

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match over the searchable fields."""
        needle = term.strip().lower()
        if not needle:
            return True
        return any(needle in field.lower() for field in self.searchable_fields())


def ensure_summary(item: Union[Dict[str, Any], ContentSummary]) -> ContentSummary:
    """Convert a catalog dict to ContentSummary (pass-through for models)."""
    return ContentSummary.model_validate(item) if isinstance(item, dict) else item
