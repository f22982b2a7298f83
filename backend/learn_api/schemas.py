"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable. Attributes are snake_case
in Python and camelCase on the wire (`lessonNumber`, `dateAdded`, ...);
either spelling is accepted on input.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import Role

# lesson numbers are stored as 64-bit integers
LESSON_NUMBER_MIN = -(2 ** 63)
LESSON_NUMBER_MAX = 2 ** 63 - 1


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class VocabEntry(CamelModel):
    """A vocabulary entry as stored inside a lesson."""
    word: str
    pronunciation: str
    meaning: str
    date_added: str
    lesson_number: int
    author_email: str


class VocabularyIn(CamelModel):
    """Payload for appending a vocabulary entry to a lesson."""
    word: str
    pronunciation: str = Field(min_length=1)
    meaning: str
    date_added: str
    author_email: str


class VocabularyUpdate(CamelModel):
    """Replacement fields for an entry addressed by its pronunciation."""
    word: str
    meaning: str
    date_added: str
    lesson_number: int = Field(ge=LESSON_NUMBER_MIN, le=LESSON_NUMBER_MAX)
    author_email: str


class LessonCreate(CamelModel):
    lesson_number: int = Field(ge=LESSON_NUMBER_MIN, le=LESSON_NUMBER_MAX)
    title: str
    description: str


class LessonUpdate(CamelModel):
    lesson_number: int = Field(ge=LESSON_NUMBER_MIN, le=LESSON_NUMBER_MAX)
    title: str


class LessonOut(CamelModel):
    id: str
    lesson_number: int
    title: str
    description: str
    vocabulary: List[VocabEntry] = []


class TutorialLinkIn(CamelModel):
    """One tutorial link in a provisioning file."""
    title: str
    url: str = Field(min_length=1)
    description: Optional[str] = None
    lesson_number: Optional[int] = Field(default=None, ge=LESSON_NUMBER_MIN, le=LESSON_NUMBER_MAX)


class TutorialOut(TutorialLinkIn):
    id: str


class RegisterIn(CamelModel):
    name: str
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    profile_image: Optional[str] = None


class LoginIn(CamelModel):
    email: str
    password: str


class RoleUpdate(CamelModel):
    role: Role


class UserOut(CamelModel):
    """Public projection of a user; the credential hash is never included."""
    id: str
    name: str
    email: str
    profile_image: Optional[str] = None
    role: str


class RegisterOut(CamelModel):
    message: str
    user_id: str


class LoginOut(CamelModel):
    message: str
    token: str
    user: UserOut


class MessageOut(CamelModel):
    message: str
