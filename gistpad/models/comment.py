from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Comment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    content: str
    author_id: str = Field(alias="authorId")
    author_email: str | None = Field(default=None, alias="authorEmail")
    gist_id: str = Field(alias="gistId")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @property
    def author_label(self) -> str:
        if self.author_email:
            return self.author_email.split("@")[0] or "Anonymous"
        return "Anonymous"
