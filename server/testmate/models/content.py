from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from testmate.database import Base, utcnow
from testmate.errors import ValidationError


ALL_YEARS = "All Year"
MAX_CHOICES = 5


class Subject(Base):
    """Course registered by a teacher"""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    code = Column(String, unique=True, nullable=False)
    status = Column(Boolean, nullable=False, default=True)
    owner_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("Account")


class Question(Base):
    """Multiple-choice question in a subject's bank"""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    topic = Column(String, nullable=False)
    question = Column(Text, nullable=False)
    question_image = Column(String, nullable=True)
    subject_name = Column(String, nullable=False, index=True)
    choices = Column(JSON, nullable=False, default=list)  # [{"choice": ..., "option_image": ...}]
    answer = Column(Text, nullable=True)
    answer_image = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def has_image_choices(self) -> bool:
        return bool(self.choices) and bool(self.choices[0].get("option_image"))

    def set_answer(self, raw: str) -> None:
        """
        Record the correct answer.

        With image choices ``raw`` is a 1-based choice number and the choice's
        image is stored, so grading never has to resolve indices.
        """
        raw = (raw or "").strip()
        if not raw:
            raise ValidationError("Must provide the correct answer.")
        if self.has_image_choices:
            try:
                index = int(raw)
            except ValueError:
                index = 0
            if not 1 <= index <= len(self.choices):
                raise ValidationError(
                    "You have images as answers, please enter the option number "
                    "which should be a correct answer!"
                )
            self.answer = None
            self.answer_image = self.choices[index - 1]["option_image"]
        else:
            self.answer = raw
            self.answer_image = None

    def add_choice(self, choice: str = None, option_image: str = None) -> None:
        if len(self.choices or []) >= MAX_CHOICES:
            raise ValidationError(f"A question can have at most {MAX_CHOICES} choices.")
        if not choice and not option_image:
            raise ValidationError("Must provide the choice text or image.")
        # Replace the list so the JSON column is flagged dirty
        self.choices = [*(self.choices or []), {"choice": choice, "option_image": option_image}]

    def is_correct(self, chosen) -> bool:
        if chosen is None:
            return False
        if self.answer_image:
            return chosen == self.answer_image
        return self.answer is not None and chosen == self.answer


class Quiz(Base):
    """Timed quiz created by a teacher"""
    __tablename__ = "quizzes"
    __table_args__ = (
        UniqueConstraint("title", "subject_name", "owner_id", name="uq_quiz_title_subject_owner"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    subject_name = Column(String, nullable=False)
    owner_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(String, nullable=False)
    passcode = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration = Column(String, nullable=False)
    question_ids = Column(JSON, nullable=False, default=list)  # weak references, quiz order
    created_at = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("Account")

    def is_open(self, now) -> bool:
        return self.start_time <= now <= self.end_time
