"""Gallery item models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from shoptrack.models.shopping import Priority


class GalleryItem(BaseModel):
    """Reusable item template scoped to one user."""

    id: int
    user_id: str
    name: str
    category: str = Field(default="Other")
    priority: Priority = Field(default=Priority.MEDIUM)
    image_url: Optional[str] = None
    usage_count: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)


__all__ = ["GalleryItem"]
