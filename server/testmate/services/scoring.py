"""
Scoring Engine.
"""
import logging
from typing import Any, Collection, Iterable, NamedTuple, Optional

from sqlalchemy.orm import Session

from testmate.models import Question

logger = logging.getLogger(__name__)


class Answer(NamedTuple):
    question_id: int
    chosen: Any


def last_answers(answers: Iterable[Answer]) -> dict:
    """Collapse duplicates so the last submitted answer per question wins."""
    latest = {}
    for answer in reversed(list(answers)):
        if answer.question_id not in latest:
            latest[answer.question_id] = answer.chosen
    return latest


class ScoringEngine:
    def __init__(self, db: Session):
        self.db = db

    def score(self, answers: Iterable[Answer], allowed_ids: Optional[Collection[int]] = None) -> int:
        """
        One point per question whose last submitted choice matches its answer.

        Questions that no longer exist, or are not in ``allowed_ids`` when it is
        given, are skipped.
        """
        latest = last_answers(answers)
        if allowed_ids is not None:
            allowed = set(allowed_ids)
            latest = {qid: chosen for qid, chosen in latest.items() if qid in allowed}
        if not latest:
            return 0

        questions = self.db.query(Question).filter(Question.id.in_(list(latest))).all()
        skipped = len(latest) - len(questions)
        if skipped:
            logger.debug("Skipped %d answers to unknown questions", skipped)
        return sum(1 for q in questions if q.is_correct(latest[q.id]))
