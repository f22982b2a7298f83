"""Repository classes encapsulating store operations.

Each repository is small and focused on one collection (lessons, users,
tutorial links). Repositories return SQLModel objects and perform
commits/refreshes where appropriate; uniqueness and existence rules are
left to the services.
"""

from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from . import models


class LessonRepository:
    """CRUD operations for `Lesson` records and their embedded vocabulary."""
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[models.Lesson]:
        """Return every lesson in store order."""
        return self.session.exec(select(models.Lesson)).all()

    def get(self, lesson_id: str) -> Optional[models.Lesson]:
        return self.session.get(models.Lesson, lesson_id)

    def get_by_number(self, lesson_number: int) -> Optional[models.Lesson]:
        """Return the lesson holding `lesson_number` or `None`."""
        stmt = select(models.Lesson).where(models.Lesson.lesson_number == lesson_number)
        return self.session.exec(stmt).first()

    def number_taken(self, lesson_number: int, exclude_id: Optional[str] = None) -> bool:
        """Return True if a lesson other than `exclude_id` holds `lesson_number`."""
        stmt = select(models.Lesson.id).where(models.Lesson.lesson_number == lesson_number)
        if exclude_id is not None:
            stmt = stmt.where(models.Lesson.id != exclude_id)
        return self.session.exec(stmt).first() is not None

    def create(self, lesson: models.Lesson) -> models.Lesson:
        """Persist a new lesson and return the managed instance."""
        self.session.add(lesson)
        self.session.commit()
        self.session.refresh(lesson)
        return lesson

    def update(self, lesson: models.Lesson, lesson_number: int, title: str) -> models.Lesson:
        """Replace number and title in place; description and vocabulary stay."""
        lesson.lesson_number = lesson_number
        lesson.title = title
        lesson.revision += 1
        self.session.add(lesson)
        self.session.commit()
        self.session.refresh(lesson)
        return lesson

    def delete(self, lesson: models.Lesson) -> None:
        self.session.delete(lesson)
        self.session.commit()

    def write_vocabulary(self, lesson_id: str, seen_revision: int, vocabulary: List[dict]) -> bool:
        """Write the whole vocabulary list back if nobody wrote since `seen_revision`.

        Returns False when the conditional update modified no row, which
        means the lesson was changed or removed after it was read.
        """
        stmt = (
            update(models.Lesson)
            .where(models.Lesson.id == lesson_id, models.Lesson.revision == seen_revision)
            .values(vocabulary=vocabulary, revision=seen_revision + 1)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount > 0


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get(self, user_id: str) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def list(self) -> List[models.User]:
        return self.session.exec(select(models.User)).all()

    def set_role(self, user: models.User, role: str) -> models.User:
        user.role = role
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def delete(self, user: models.User) -> None:
        self.session.delete(user)
        self.session.commit()


class TutorialRepository:
    """Read access to tutorial links plus the provisioning insert."""
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[models.TutorialLink]:
        return self.session.exec(select(models.TutorialLink)).all()

    def exists_by_url(self, url: str) -> bool:
        stmt = select(models.TutorialLink.id).where(models.TutorialLink.url == url)
        return self.session.exec(stmt).first() is not None

    def create(self, link: models.TutorialLink) -> models.TutorialLink:
        self.session.add(link)
        self.session.commit()
        self.session.refresh(link)
        return link
