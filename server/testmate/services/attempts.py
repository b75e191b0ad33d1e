"""
Quiz Attempt Coordinator.

A student's slot in a quiz's Result Ledger is reserved with a zero-score
placeholder row before any question is released. The ``(result_id, prn)``
unique constraint makes that reservation a single atomic insert, so of any
number of concurrent ``open_attempt`` calls for the same student exactly one
succeeds.
"""
import logging
from datetime import datetime
from typing import Callable, Iterable, List

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from testmate.database import utcnow
from testmate.errors import (
    AlreadyAttempted,
    ConflictError,
    NoQuestions,
    NotFoundError,
    QuizNotOpen,
    TransientStoreError,
    ValidationError,
)
from testmate.models import Account, Question, Quiz, ResultEntry, ResultLedger

logger = logging.getLogger(__name__)


class QuizAttemptCoordinator:
    def __init__(self, db: Session, clock: Callable = utcnow):
        self.db = db
        self.clock = clock

    # Quiz lifecycle

    def create_quiz(
        self,
        owner: Account,
        title: str,
        subject_name: str,
        year: str,
        passcode: str,
        start_time: datetime,
        end_time: datetime,
        duration: str,
    ) -> Quiz:
        """Create a quiz together with its (empty) result ledger."""
        if start_time >= end_time:
            raise ValidationError("Quiz must end after it starts.")
        duplicate = (
            self.db.query(Quiz)
            .filter_by(title=title, subject_name=subject_name, owner_id=owner.id)
            .first()
        )
        if duplicate is not None:
            raise ConflictError("Please enter some other name quiz title.")

        quiz = Quiz(
            title=title,
            subject_name=subject_name,
            owner_id=owner.id,
            year=year,
            passcode=passcode,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            question_ids=[],
        )
        try:
            self.db.add(quiz)
            self.db.flush()
            self.db.add(ResultLedger(quiz_id=quiz.id))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Please enter some other name quiz title.")
        logger.info("Quiz %s created by %s", quiz.id, owner.email)
        return quiz

    def get_quiz(self, quiz_id: int) -> Quiz:
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found!")
        return quiz

    def add_questions(self, quiz: Quiz, question_ids: Iterable[int]) -> None:
        """Append to the quiz order, ignoring ids it already holds."""
        current = list(quiz.question_ids or [])
        for qid in question_ids:
            if qid not in current:
                current.append(qid)
        quiz.question_ids = current
        self.db.commit()

    def remove_question(self, quiz: Quiz, question_id: int) -> None:
        if not quiz.question_ids:
            raise NoQuestions()
        quiz.question_ids = [qid for qid in quiz.question_ids if qid != question_id]
        self.db.commit()

    def questions_for(self, quiz: Quiz) -> List[Question]:
        """Questions in quiz order; references to deleted questions are skipped."""
        ids = list(quiz.question_ids or [])
        if not ids:
            return []
        found = {q.id: q for q in self.db.query(Question).filter(Question.id.in_(ids))}
        return [found[qid] for qid in ids if qid in found]

    def ledger(self, quiz: Quiz) -> ResultLedger:
        ledger = self.db.query(ResultLedger).filter_by(quiz_id=quiz.id).first()
        if ledger is None:
            raise NotFoundError("Something went wrong!")
        return ledger

    def delete_quiz(self, quiz: Quiz) -> None:
        """Delete the ledger, then the quiz. Nothing is removed unless both go."""
        ledger = self.ledger(quiz)
        try:
            self.db.delete(ledger)
            self.db.flush()
            self.db.delete(quiz)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to delete quiz %s", quiz.id)
            raise TransientStoreError() from exc
        logger.info("Quiz %s deleted", quiz.id)

    # Attempts

    def open_attempt(self, quiz: Quiz, prn: str) -> List[Question]:
        """
        Reserve the student's single attempt and release the questions.

        Raises NoQuestions for an empty quiz, QuizNotOpen outside the quiz
        window, and AlreadyAttempted when the student already holds a slot.
        """
        if not quiz.question_ids:
            raise NoQuestions()
        now = self.clock()
        if not quiz.is_open(now):
            raise QuizNotOpen()

        ledger = self.ledger(quiz)
        self.db.add(ResultEntry(result_id=ledger.id, prn=prn, score=0, started_at=now))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AlreadyAttempted()
        logger.info("Attempt opened on quiz %s by %s", quiz.id, prn)
        return self.questions_for(quiz)

    def close_attempt(self, quiz: Quiz, prn: str, score: int) -> None:
        """Write the graded score into the student's placeholder entry."""
        ledger = self.ledger(quiz)
        result = self.db.execute(
            update(ResultEntry)
            .where(
                ResultEntry.result_id == ledger.id,
                ResultEntry.prn == prn,
                ResultEntry.submitted_at.is_(None),
            )
            .values(score=score, submitted_at=self.clock())
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount == 0:
            self.db.rollback()
            entry = self.db.query(ResultEntry).filter_by(result_id=ledger.id, prn=prn).first()
            if entry is None:
                raise NotFoundError("Quiz attempt was never started!")
            raise AlreadyAttempted("Exam already submitted!")
        self.db.commit()
        logger.info("Attempt closed on quiz %s by %s with score %d", quiz.id, prn, score)
