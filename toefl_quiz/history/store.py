"""Per-user quiz history with retake-aware attempt groups."""

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime

from pydantic import TypeAdapter, ValidationError

from toefl_quiz.history.storage import KeyValueStorage
from toefl_quiz.models.history import Answer, QuizAttempt, QuizHistoryGroup
from toefl_quiz.models.quiz import Quiz

logger = logging.getLogger(__name__)

APP_DATA_KEY = "toeflQuizAppUserData"
LAST_USER_KEY = "toeflQuizAppLastUser"

_all_user_data = TypeAdapter(dict[str, list[QuizHistoryGroup]])


def _new_id() -> str:
    return str(uuid.uuid4())


class HistoryStore:
    """
    Append-only history of quiz groups, keyed by user.

    Each group ties one article/quiz pair to every attempt made against it.
    Attempts are only ever appended. Mutations for one user are expected to
    come from a single caller at a time.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.storage = storage
        self.clock = clock
        self.id_factory = id_factory

    # User management

    def get_last_user(self) -> str | None:
        """Get the identifier of the last active user, if any."""
        raw = self.storage.get(LAST_USER_KEY)
        if not raw:
            return None
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.error("Failed to read stored last user, discarding it: %s", e)
            self.storage.delete(LAST_USER_KEY)
            return None

    def set_last_user(self, user_id: str | None) -> None:
        """Remember the last active user, or forget it when None."""
        if user_id:
            self.storage.set(LAST_USER_KEY, user_id.encode("utf-8"))
        else:
            self.storage.delete(LAST_USER_KEY)

    # Private helpers

    def _load_all(self) -> dict[str, list[QuizHistoryGroup]]:
        raw = self.storage.get(APP_DATA_KEY)
        if not raw:
            return {}
        try:
            return _all_user_data.validate_json(raw)
        except ValidationError as e:
            logger.error("Failed to parse stored quiz history, discarding it: %s", e)
            self.storage.delete(APP_DATA_KEY)
            return {}

    def _save_all(self, data: dict[str, list[QuizHistoryGroup]]) -> None:
        self.storage.set(APP_DATA_KEY, _all_user_data.dump_json(data, by_alias=True))

    @staticmethod
    def _sorted(groups: list[QuizHistoryGroup]) -> list[QuizHistoryGroup]:
        return sorted(groups, key=lambda g: g.last_attempt_timestamp, reverse=True)

    # Public history API

    def get_history(self, user_id: str) -> list[QuizHistoryGroup]:
        """
        Get all groups for a user, most recently attempted first.

        Args:
            user_id: User identifier

        Returns:
            List of QuizHistoryGroup
        """
        return self._sorted(self._load_all().get(user_id, []))

    def get_group(self, user_id: str, group_id: str) -> QuizHistoryGroup | None:
        """Get a single group by id, or None if the user has no such group."""
        return next((g for g in self.get_history(user_id) if g.id == group_id), None)

    def save_attempt(
        self,
        user_id: str,
        article: str,
        quiz: Quiz,
        user_answers: Sequence[Answer],
        score: int,
        existing_group_id: str | None = None,
    ) -> list[QuizHistoryGroup]:
        """
        Record a submitted attempt.

        A retake of an existing group appends to it; anything else starts a
        new group holding this single attempt.

        Args:
            user_id: User identifier
            article: Article the quiz was generated from
            quiz: The quiz that was taken
            user_answers: One slot per question
            score: Graded score
            existing_group_id: Group being retaken, if any

        Returns:
            The user's updated history, most recent first
        """
        all_data = self._load_all()
        user_history = all_data.get(user_id, [])

        attempt = QuizAttempt(
            id=self.id_factory(),
            user_answers=[None if a is None else list(a) for a in user_answers],
            score=score,
            timestamp=self.clock(),
        )

        existing_group = None
        if existing_group_id:
            existing_group = next((g for g in user_history if g.id == existing_group_id), None)

        if existing_group is not None:
            existing_group.attempts.append(attempt)
            existing_group.last_attempt_timestamp = attempt.timestamp
            logger.info(
                "Recorded retake %d for group %s", len(existing_group.attempts), existing_group.id
            )
        else:
            if existing_group_id:
                logger.warning(
                    "Group %s not found for user %s; starting a new group",
                    existing_group_id,
                    user_id,
                )
            group = QuizHistoryGroup(
                id=self.id_factory(),
                article=article,
                quiz=quiz,
                title=quiz.title,
                attempts=[attempt],
                last_attempt_timestamp=attempt.timestamp,
            )
            user_history.append(group)
            logger.info("Created history group %s for %r", group.id, quiz.title)

        all_data[user_id] = user_history
        self._save_all(all_data)
        return self.get_history(user_id)

    def delete_group(self, user_id: str, group_id: str) -> list[QuizHistoryGroup]:
        """
        Remove a group and all of its attempts. Unknown ids are ignored.

        Args:
            user_id: User identifier
            group_id: Group to remove

        Returns:
            The user's updated history, most recent first
        """
        all_data = self._load_all()
        user_history = all_data.get(user_id, [])
        remaining = [g for g in user_history if g.id != group_id]

        if len(remaining) != len(user_history):
            all_data[user_id] = remaining
            self._save_all(all_data)
            logger.info("Deleted history group %s", group_id)

        return self._sorted(remaining)
