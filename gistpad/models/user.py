from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    uid: str
    email: str | None = None
    username: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
