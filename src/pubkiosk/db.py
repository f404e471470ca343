"""SQLite persistence layer for the publication cache."""

from __future__ import annotations

from pathlib import Path

from sqlmodel import Field, SQLModel, create_engine


class PublicationRecord(SQLModel, table=True):
    """One cached publication; ``id`` is reassigned on every refresh."""

    __tablename__ = "publications"

    id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    catalog_id: str = Field(index=True)
    title: str
    description: str | None = None
    isbns_json: str = Field(default="[]")
    cover: bytes | None = None


class AuthorRecord(SQLModel, table=True):
    """One author occurrence linked to a publication row."""

    __tablename__ = "authors"

    row_id: int | None = Field(default=None, primary_key=True)
    publication_id: int = Field(foreign_key="publications.id", index=True)
    position: int = 0
    name: str


def create_engine_for_path(db_path: Path):
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def init_db(engine) -> None:
    SQLModel.metadata.create_all(engine)
