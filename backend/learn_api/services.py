"""Business logic services used by HTTP controllers.

Services coordinate repositories and enforce the consistency rules of
the store: lesson numbers and emails are unique across their collection,
and a pronunciation is unique within one lesson's vocabulary. Refusals
are raised as `errors.ServiceError` subclasses; controllers never see a
raw store error for a rule violation.

Vocabulary entries have no identity of their own and are addressed by
pronunciation, so every vocabulary change is a read-modify-write of the
whole list. The write-back is conditional on the lesson revision that was
read, and fails with `WriteFailedError` if another writer got there first.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import auth, models, repositories
from .config import Settings
from .errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError, WriteFailedError
from .schemas import TutorialLinkIn, VocabEntry

logger = logging.getLogger("learn_api.services")


class LessonService:
    """Lesson records and the vocabulary embedded in them."""
    def __init__(self, session: Session):
        self.session = session
        self.lesson_repo = repositories.LessonRepository(session)

    def list_lessons(self) -> List[models.Lesson]:
        return self.lesson_repo.list()

    def get_lesson(self, lesson_id: str) -> models.Lesson:
        """Return the lesson with `lesson_id` or raise `NotFoundError`.

        A malformed id cannot match any record and is reported the same
        way as an unknown one.
        """
        lesson_id = models.normalize_id(lesson_id)
        lesson = self.lesson_repo.get(lesson_id) if lesson_id else None
        if lesson is None:
            raise NotFoundError("Lesson not found")
        return lesson

    def create_lesson(self, lesson_number: int, title: str, description: str) -> models.Lesson:
        """Insert a lesson with an empty vocabulary list."""
        if self.lesson_repo.number_taken(lesson_number):
            logger.warning("lesson %s already exists", lesson_number)
            raise ConflictError("Lesson already exists")
        lesson = models.Lesson(lesson_number=lesson_number, title=title, description=description, vocabulary=[])
        try:
            lesson = self.lesson_repo.create(lesson)
        except IntegrityError:
            # lost the race against a concurrent insert of the same number
            self.session.rollback()
            raise ConflictError("Lesson already exists")
        logger.info("created lesson %s (%s)", lesson.lesson_number, lesson.id)
        return lesson

    def update_lesson(self, lesson_id: str, lesson_number: int, title: str) -> models.Lesson:
        """Replace number and title of an existing lesson.

        Keeping the lesson's own number is allowed; taking a number held by
        a different lesson is a conflict.
        """
        lesson = self.get_lesson(lesson_id)
        if self.lesson_repo.number_taken(lesson_number, exclude_id=lesson.id):
            raise ConflictError("Lesson number already exists.")
        try:
            lesson = self.lesson_repo.update(lesson, lesson_number, title)
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("Lesson number already exists.")
        logger.info("updated lesson %s", lesson.id)
        return lesson

    def delete_lesson(self, lesson_id: str) -> None:
        """Remove a lesson together with its vocabulary."""
        lesson = self.get_lesson(lesson_id)
        self.lesson_repo.delete(lesson)
        logger.info("deleted lesson %s", lesson_id)

    def add_vocabulary(
        self,
        lesson_number: int,
        word: str,
        pronunciation: str,
        meaning: str,
        date_added: str,
        author_email: str,
    ) -> models.Lesson:
        """Append an entry to the lesson found by `lesson_number`.

        The entry carries a copy of the lesson number. Returns the whole
        lesson as stored after the append.
        """
        lesson = self.lesson_repo.get_by_number(lesson_number)
        if lesson is None:
            raise NotFoundError("Lesson not found")
        if _find_entry(lesson.vocabulary, pronunciation) is not None:
            raise ConflictError("Vocabulary already exists in this lesson")
        entry = VocabEntry(
            word=word,
            pronunciation=pronunciation,
            meaning=meaning,
            date_added=date_added,
            lesson_number=lesson.lesson_number,
            author_email=author_email,
        )
        vocabulary = _copy_entries(lesson.vocabulary) + [entry.model_dump()]
        self._write_back(lesson, vocabulary, "Failed to add vocabulary")
        logger.info("added vocabulary %r to lesson %s", pronunciation, lesson.lesson_number)
        return self.get_lesson(lesson.id)

    def update_vocabulary(
        self,
        lesson_id: str,
        pronunciation: str,
        word: str,
        meaning: str,
        date_added: str,
        lesson_number: int,
        author_email: str,
    ) -> models.Lesson:
        """Replace the fields of the entry keyed by `pronunciation` in place.

        The entry keeps its pronunciation and its position in the list;
        every other entry is written back unchanged.
        """
        lesson = self.get_lesson(lesson_id)
        index = _find_entry(lesson.vocabulary, pronunciation)
        if index is None:
            raise NotFoundError("Vocabulary not found")
        vocabulary = _copy_entries(lesson.vocabulary)
        vocabulary[index] = VocabEntry(
            word=word,
            pronunciation=pronunciation,
            meaning=meaning,
            date_added=date_added,
            lesson_number=lesson_number,
            author_email=author_email,
        ).model_dump()
        self._write_back(lesson, vocabulary, "Failed to update vocabulary")
        logger.info("updated vocabulary %r in lesson %s", pronunciation, lesson.id)
        return self.get_lesson(lesson.id)

    def delete_vocabulary(self, lesson_id: str, pronunciation: str) -> models.Lesson:
        """Remove the first entry whose pronunciation matches."""
        lesson = self.get_lesson(lesson_id)
        index = _find_entry(lesson.vocabulary, pronunciation)
        if index is None:
            raise NotFoundError("Vocabulary not found")
        vocabulary = _copy_entries(lesson.vocabulary)
        del vocabulary[index]
        self._write_back(lesson, vocabulary, "Failed to delete vocabulary")
        logger.info("deleted vocabulary %r from lesson %s", pronunciation, lesson.id)
        return self.get_lesson(lesson.id)

    def _write_back(self, lesson: models.Lesson, vocabulary: List[dict], failure: str) -> None:
        if not self.lesson_repo.write_vocabulary(lesson.id, lesson.revision, vocabulary):
            logger.warning("vocabulary write-back on lesson %s modified nothing", lesson.id)
            raise WriteFailedError(failure)


def _find_entry(vocabulary: List[dict], pronunciation: str) -> Optional[int]:
    """Return the index of the first entry with `pronunciation`, if any."""
    for i, entry in enumerate(vocabulary or []):
        if entry.get("pronunciation") == pronunciation:
            return i
    return None


def _copy_entries(vocabulary: List[dict]) -> List[dict]:
    return [dict(e) for e in vocabulary or []]


class UserService:
    """Registration, login and administration of user accounts."""
    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings
        self.user_repo = repositories.UserRepository(session)

    def register(self, name: str, email: str, password: str, profile_image: Optional[str] = None) -> models.User:
        """Create a new user with a hashed password and the default role.

        Returns the persisted `User` instance.
        """
        if self.user_repo.get_by_email(email) is not None:
            logger.warning("registration refused: email already in use")
            raise ConflictError("Email already exists. Please use a different email.")
        user = models.User(
            name=name,
            email=email,
            password_hash=auth.hash_password(password),
            profile_image=profile_image or None,
            role=models.Role.USER.value,
        )
        try:
            user = self.user_repo.create(user)
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("Email already exists. Please use a different email.")
        logger.info("registered user %s", user.id)
        return user

    def authenticate(self, email: str, password: str) -> Tuple[str, models.User]:
        """Verify credentials and return a signed token with the user.

        Raises `NotFoundError` for an unknown email and
        `UnauthorizedError` when the password does not match.
        """
        user = self.user_repo.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        if not auth.verify_password(password, user.password_hash):
            logger.warning("login refused for user %s: invalid password", user.id)
            raise UnauthorizedError("Invalid password")
        token = auth.issue_token(self.settings, user.id, user.email)
        logger.info("user %s logged in", user.id)
        return token, user

    def list_users(self) -> List[models.User]:
        return self.user_repo.list()

    def set_role(self, user_id: str, role: str) -> models.User:
        """Replace the role of a user, leaving every other field alone."""
        user = self._require(user_id)
        user = self.user_repo.set_role(user, models.Role(role).value)
        logger.info("user %s role set to %s", user.id, user.role)
        return user

    def delete_user(self, user_id: str) -> None:
        user = self._require(user_id)
        self.user_repo.delete(user)
        logger.info("deleted user %s", user_id)

    def _require(self, user_id: str) -> models.User:
        normalized = models.normalize_id(user_id)
        if normalized is None:
            raise BadRequestError("Invalid user id")
        user = self.user_repo.get(normalized)
        if user is None:
            raise NotFoundError("User not found")
        return user


class TutorialService:
    """Tutorial links: read-only over HTTP, loaded by the provisioning script."""
    def __init__(self, session: Session):
        self.session = session
        self.tutorial_repo = repositories.TutorialRepository(session)

    def list_tutorials(self) -> List[models.TutorialLink]:
        return self.tutorial_repo.list()

    def import_links(self, items: List[Any]) -> Dict[str, Any]:
        """Insert tutorial links from a list of dicts.

        Links whose `url` is already stored (or repeated earlier in the
        same list) are skipped. Returns counts of created and skipped
        links and the validation `errors` per item.
        """
        created = 0
        skipped = 0
        errors = []
        for idx, item in enumerate(items):
            try:
                link = TutorialLinkIn.model_validate(item)
            except ValueError as e:
                errors.append({'index': idx, 'error': str(e)})
                continue
            if self.tutorial_repo.exists_by_url(link.url):
                skipped += 1
                continue
            self.tutorial_repo.create(models.TutorialLink(**link.model_dump()))
            created += 1
        logger.info("imported tutorial links: created %d, skipped %d, errors %d", created, skipped, len(errors))
        return {'created': created, 'skipped': skipped, 'errors': errors}
