"""
Subject and question bank routes.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from testmate.database import get_db
from testmate.deps import require_role
from testmate.errors import AuthError, ConflictError, NotFoundError
from testmate.models import Account, AccountRole, Question, Subject
from testmate.schemas import (
    BlankQuestionRequest,
    MessageResponse,
    QuestionCreate,
    QuestionEdit,
    QuestionResponse,
    SubjectCreate,
    SubjectResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Subjects"])

teacher_only = require_role(AccountRole.TEACHER)


def owned_subject(db: Session, name: str, account: Account) -> Subject:
    subject = db.query(Subject).filter_by(name=name).first()
    if subject is None:
        raise NotFoundError("Subject is not registered")
    if subject.owner_id != account.id:
        raise AuthError("You have no authority to edit this subject.")
    return subject


def owned_question(db: Session, question_id: int, account: Account) -> Question:
    question = db.get(Question, question_id)
    if question is None:
        raise NotFoundError("Question not found!")
    owned_subject(db, question.subject_name, account)
    return question


@router.post("/subjects", response_model=SubjectResponse, status_code=201)
def add_subject(
    request: SubjectCreate,
    account: Account = Depends(teacher_only),
    db: Session = Depends(get_db),
):
    if db.query(Subject).filter_by(name=request.name).first():
        raise ConflictError("This course is already registered.")
    if db.query(Subject).filter_by(code=request.code).first():
        raise ConflictError("Already a course is registered with this code.")

    subject = Subject(name=request.name, code=request.code, status=request.status, owner_id=account.id)
    db.add(subject)
    db.commit()
    logger.info("Subject %s added by %s", subject.name, account.email)
    return subject


@router.get("/subjects", response_model=List[SubjectResponse])
def list_subjects(account: Account = Depends(teacher_only), db: Session = Depends(get_db)):
    subjects = db.query(Subject).filter_by(owner_id=account.id).order_by(Subject.id).all()
    if not subjects:
        raise NotFoundError("No subjects registered")
    return subjects


@router.get("/subjects/student", response_model=List[str])
def list_student_subjects(
    account: Account = Depends(require_role(AccountRole.STUDENT)),
    db: Session = Depends(get_db),
):
    """Subjects taught by teachers of the student's stream."""
    names = [
        subject.name
        for subject in db.query(Subject)
        .join(Account, Subject.owner_id == Account.id)
        .filter(Account.role == AccountRole.TEACHER, Account.work == account.work)
        .order_by(Subject.id)
    ]
    if not names:
        raise NotFoundError("No subjects registered for your stream.")
    return names


@router.post("/questions", response_model=QuestionResponse, status_code=201)
def add_question(
    request: QuestionCreate,
    account: Account = Depends(teacher_only),
    db: Session = Depends(get_db),
):
    owned_subject(db, request.subject_name, account)
    question = Question(
        topic=request.topic.strip().lower(),
        question=request.question,
        question_image=request.question_image,
        subject_name=request.subject_name,
        choices=[],
    )
    for choice in request.choices:
        question.add_choice(choice.choice, choice.option_image)
    question.set_answer(request.answer)
    db.add(question)
    db.commit()
    return question


@router.post("/questions/blank", response_model=QuestionResponse, status_code=201)
def blank_question(
    request: BlankQuestionRequest,
    account: Account = Depends(teacher_only),
    db: Session = Depends(get_db),
):
    """Empty question to be filled in piece by piece with PATCH."""
    owned_subject(db, request.subject_name, account)
    question = Question(topic="", question="", subject_name=request.subject_name, choices=[])
    db.add(question)
    db.commit()
    return question


@router.patch("/questions/{question_id}", response_model=QuestionResponse)
def edit_question(
    question_id: int,
    request: QuestionEdit,
    account: Account = Depends(teacher_only),
    db: Session = Depends(get_db),
):
    question = owned_question(db, question_id, account)
    if request.title == "question":
        if request.topic is not None:
            question.topic = request.topic.strip().lower()
        if request.value is not None:
            question.question = request.value
        if request.image is not None:
            question.question_image = request.image
    elif request.title == "choice":
        question.add_choice(request.value, request.image)
    else:
        question.set_answer(request.value)
    db.commit()
    return question


@router.get("/subjects/{subject_name}/questions", response_model=List[QuestionResponse])
def list_questions(
    subject_name: str,
    topic: Optional[str] = None,
    account: Account = Depends(teacher_only),
    db: Session = Depends(get_db),
):
    """Newest first; ``topic`` matches any topic containing it."""
    query = db.query(Question).filter(Question.subject_name == subject_name)
    if topic:
        query = query.filter(Question.topic.contains(topic.strip().lower()))
    questions = query.order_by(Question.id.desc()).all()
    if not questions:
        raise NotFoundError("No questions added")
    return questions


@router.delete("/questions/{question_id}", response_model=MessageResponse)
def remove_question(
    question_id: int,
    account: Account = Depends(teacher_only),
    db: Session = Depends(get_db),
):
    question = owned_question(db, question_id, account)
    # Quizzes keep weak references; grading skips the missing id
    db.delete(question)
    db.commit()
    return MessageResponse(message="Successfully deleted.")
