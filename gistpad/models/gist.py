from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

GistStatus = Literal["public", "private"]
VALID_STATUSES = {"public", "private"}


class Gist(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    filename: str
    code: str
    description: str | None = None
    status: GistStatus = "public"
    user_id: str = Field(alias="userId")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @property
    def is_private(self) -> bool:
        return self.status == "private"
