"""SQLModel data models.

Each table stands for one collection of the document store. A lesson is
a single record: its vocabulary entries are embedded in the row as a JSON
list and have no identity of their own.
"""

import uuid
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def new_id() -> str:
    """Return a fresh store-assigned identity (UUID4 hex)."""
    return uuid.uuid4().hex


def normalize_id(value: str) -> Optional[str]:
    """Return `value` in stored form (UUID hex), or `None` if it is not a
    well-formed record identity. Hyphenated UUIDs are accepted.
    """
    try:
        return uuid.UUID(str(value)).hex
    except ValueError:
        return None


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Lesson(SQLModel, table=True):
    """A numbered lesson with its ordered vocabulary list.

    Fields:
    - `lesson_number`: unique across all lessons
    - `vocabulary`: list of entry dicts, see `schemas.VocabEntry`
    - `revision`: bumped on every write; guards vocabulary write-backs
    """
    __tablename__ = "lessons"

    id: str = Field(default_factory=new_id, primary_key=True)
    lesson_number: int = Field(index=True, unique=True, nullable=False)
    title: str
    description: str = ""
    vocabulary: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    revision: int = Field(default=0, nullable=False)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `email`: unique login name
    - `password_hash`: salted one-way hash (never store plaintext)
    """
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True, nullable=False)
    password_hash: str
    profile_image: Optional[str] = None
    role: str = Field(default=Role.USER.value)


class TutorialLink(SQLModel, table=True):
    """A tutorial video link. Provisioned outside the HTTP surface."""
    __tablename__ = "tutorial_links"

    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    url: str = Field(index=True)
    description: Optional[str] = None
    lesson_number: Optional[int] = None
