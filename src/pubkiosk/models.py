"""Core data models used throughout the kiosk catalog."""

from __future__ import annotations

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, field_validator

from pubkiosk.utils import normalize_isbn, title_case


class Publication(BaseModel):
    """A single catalog entry with its resolved cover."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str = "Untitled"
    catalog_id: str
    description: str | None = None
    authors: list[str] = Field(default_factory=list)
    isbns: list[str] = Field(default_factory=list)
    cover_image: Image.Image | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _title_case(cls, value: str | None) -> str:
        if value is None or not str(value).strip():
            return "Untitled"
        return title_case(str(value).strip())

    @field_validator("authors", mode="before")
    @classmethod
    def _drop_empty_authors(cls, value: list[str | None] | None) -> list[str]:
        return [name.strip() for name in value or [] if name and name.strip()]

    @field_validator("isbns", mode="before")
    @classmethod
    def _truncate_isbns(cls, value: list[str | None] | None) -> list[str]:
        isbns = (normalize_isbn(item) for item in value or [])
        return [isbn for isbn in isbns if isbn]

    @property
    def author_line(self) -> str:
        return ", ".join(self.authors)

    def __str__(self) -> str:
        isbn = self.isbns[0] if self.isbns else "—"
        return f"Publication<Title: {self.title}, ISBN: {isbn}>"
