"""
Quiz routes: quiz management for teachers, attempts and results for students.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from testmate.database import get_db
from testmate.deps import get_coordinator, get_current_account, get_scoring, require_role
from testmate.errors import AuthError, NoQuestions, NotFoundError
from testmate.models import ALL_YEARS, Account, AccountRole, Question, Quiz
from testmate.routes.subjects import owned_subject
from testmate.schemas import (
    AttemptRequest,
    MessageResponse,
    QuestionPublic,
    QuestionResponse,
    QuizCreate,
    QuizQuestionsAdd,
    QuizResponse,
    ResultEntryResponse,
    ResultResponse,
    SubmitRequest,
    SubmitResponse,
)
from testmate.services.attempts import QuizAttemptCoordinator
from testmate.services.scoring import Answer, ScoringEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])

teacher_only = require_role(AccountRole.TEACHER)
student_only = require_role(AccountRole.STUDENT)


def owned_quiz(coordinator: QuizAttemptCoordinator, quiz_id: int, account: Account) -> Quiz:
    quiz = coordinator.get_quiz(quiz_id)
    if quiz.owner_id != account.id:
        raise AuthError("You have no authority to edit this quiz.")
    return quiz


@router.post("", response_model=QuizResponse, status_code=201)
def create_quiz(
    request: QuizCreate,
    account: Account = Depends(teacher_only),
    coordinator: QuizAttemptCoordinator = Depends(get_coordinator),
):
    owned_subject(coordinator.db, request.subject_name, account)
    return coordinator.create_quiz(
        owner=account,
        title=request.title,
        subject_name=request.subject_name,
        year=request.year,
        passcode=request.passcode,
        start_time=request.start_time.replace(tzinfo=None),
        end_time=request.end_time.replace(tzinfo=None),
        duration=request.duration,
    )


@router.get("", response_model=List[QuizResponse])
def list_quizzes(account: Account = Depends(teacher_only), db: Session = Depends(get_db)):
    quizzes = db.query(Quiz).filter_by(owner_id=account.id).order_by(Quiz.id).all()
    if not quizzes:
        raise NotFoundError("No quizes created")
    return quizzes


@router.get("/student", response_model=List[QuizResponse])
def list_student_quizzes(account: Account = Depends(student_only), db: Session = Depends(get_db)):
    """Quizzes from teachers of the student's stream aimed at their year."""
    teacher_ids = [
        teacher_id for (teacher_id,) in db.query(Account.id).filter(
            Account.role == AccountRole.TEACHER, Account.work == account.work
        )
    ]
    if not teacher_ids:
        raise NotFoundError("No teachers registered with your stream.")
    return (
        db.query(Quiz)
        .filter(Quiz.owner_id.in_(teacher_ids), Quiz.year.in_([account.year_of_study, ALL_YEARS]))
        .order_by(Quiz.id)
        .all()
    )


@router.post("/{quiz_id}/questions", response_model=MessageResponse)
def store_questions(
    quiz_id: int,
    request: QuizQuestionsAdd,
    account: Account = Depends(teacher_only),
    coordinator: QuizAttemptCoordinator = Depends(get_coordinator),
):
    quiz = owned_quiz(coordinator, quiz_id, account)
    known = {
        qid for (qid,) in coordinator.db.query(Question.id).filter(Question.id.in_(request.question_ids))
    }
    missing = [qid for qid in request.question_ids if qid not in known]
    if missing:
        raise NotFoundError(f"Questions not found: {missing}")
    coordinator.add_questions(quiz, request.question_ids)
    return MessageResponse(message="Questions added successfully")


@router.delete("/{quiz_id}/questions/{question_id}", response_model=MessageResponse)
def remove_quiz_question(
    quiz_id: int,
    question_id: int,
    account: Account = Depends(teacher_only),
    coordinator: QuizAttemptCoordinator = Depends(get_coordinator),
):
    quiz = owned_quiz(coordinator, quiz_id, account)
    coordinator.remove_question(quiz, question_id)
    return MessageResponse(message="Successfully removed.")


@router.post("/{quiz_id}/questions/view")
def get_quiz_questions(
    quiz_id: int,
    request: AttemptRequest,
    account: Account = Depends(get_current_account),
    coordinator: QuizAttemptCoordinator = Depends(get_coordinator),
):
    """
    Release a quiz's questions.

    For a student this opens their single attempt, so it only works once;
    answers are left out. The owning teacher gets the full questions.
    """
    quiz = coordinator.get_quiz(quiz_id)
    if account.role is AccountRole.STUDENT:
        if request.passcode != quiz.passcode:
            raise AuthError("Incorrect passcode!")
        questions = coordinator.open_attempt(quiz, account.prn)
        return [QuestionPublic.model_validate(q) for q in questions]

    if quiz.owner_id != account.id:
        raise AuthError("You have no authority to view this quiz.")
    questions = coordinator.questions_for(quiz)
    if not questions:
        raise NoQuestions()
    return [QuestionResponse.model_validate(q) for q in questions]


@router.post("/{quiz_id}/submit", response_model=SubmitResponse)
def submit_quiz(
    quiz_id: int,
    request: SubmitRequest,
    account: Account = Depends(student_only),
    coordinator: QuizAttemptCoordinator = Depends(get_coordinator),
    scoring: ScoringEngine = Depends(get_scoring),
):
    quiz = coordinator.get_quiz(quiz_id)
    answers = [Answer(a.question_id, a.chosen) for a in request.answers]
    score = scoring.score(answers, allowed_ids=quiz.question_ids)
    coordinator.close_attempt(quiz, account.prn, score)
    return SubmitResponse(
        message="Exam submitted successfully",
        score=score,
        total=len(set(quiz.question_ids or [])),
    )


@router.get("/{quiz_id}/result", response_model=ResultResponse)
def get_result(
    quiz_id: int,
    account: Account = Depends(get_current_account),
    coordinator: QuizAttemptCoordinator = Depends(get_coordinator),
):
    """Whole ledger for the owning teacher, the caller's own entry for a student."""
    quiz = coordinator.get_quiz(quiz_id)
    entries = coordinator.ledger(quiz).entries
    if account.role is AccountRole.STUDENT:
        entries = [entry for entry in entries if entry.prn == account.prn]
    elif quiz.owner_id != account.id:
        raise AuthError("You have no authority to view this quiz.")
    return ResultResponse(
        quiz_id=quiz.id,
        scores=[ResultEntryResponse.model_validate(entry) for entry in entries],
    )


@router.delete("/{quiz_id}", response_model=MessageResponse)
def remove_quiz(
    quiz_id: int,
    account: Account = Depends(teacher_only),
    coordinator: QuizAttemptCoordinator = Depends(get_coordinator),
):
    quiz = owned_quiz(coordinator, quiz_id, account)
    coordinator.delete_quiz(quiz)
    return MessageResponse(message="Successfully removed.")
