from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Literal, Any
from datetime import datetime
from testmate.models.user import AccountRole


# Account Schemas
class SignupRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    work: str = Field(min_length=1)
    password: str
    role: AccountRole
    year_of_study: Optional[str] = None


class AccountResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    work: str
    role: AccountRole
    year_of_study: Optional[str] = None
    verified: bool

    class Config:
        from_attributes = True


class VerifyEmailRequest(BaseModel):
    user_id: int
    otp: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: AccountRole


class AdminLoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    token: str
    user: AccountResponse


class ForgotPasswordRequest(BaseModel):
    email: str = Field(min_length=1)


class ResetPasswordRequest(BaseModel):
    password: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# Subject Schemas
class SubjectCreate(BaseModel):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    status: bool = True


class SubjectResponse(SubjectCreate):
    id: int
    owner_id: int

    class Config:
        from_attributes = True


# Question Schemas
class ChoiceIn(BaseModel):
    choice: Optional[str] = None
    option_image: Optional[str] = None


class QuestionCreate(BaseModel):
    topic: str = Field(min_length=1)
    question: str = Field(min_length=1)
    question_image: Optional[str] = None
    subject_name: str = Field(min_length=1)
    choices: List[ChoiceIn] = Field(min_length=1)
    answer: str = Field(min_length=1)  # text, or 1-based choice number for image choices


class BlankQuestionRequest(BaseModel):
    subject_name: str = Field(min_length=1)


class QuestionEdit(BaseModel):
    """Incremental edit of one part of a question."""
    title: Literal["question", "choice", "answer"]
    value: Optional[str] = None
    image: Optional[str] = None
    topic: Optional[str] = None


class QuestionPublic(BaseModel):
    """Question as released to a student: no answer fields."""
    id: int
    topic: str
    question: str
    question_image: Optional[str] = None
    subject_name: str
    choices: List[ChoiceIn]

    class Config:
        from_attributes = True


class QuestionResponse(QuestionPublic):
    answer: Optional[str] = None
    answer_image: Optional[str] = None


# Quiz Schemas
class QuizCreate(BaseModel):
    title: str = Field(min_length=1)
    subject_name: str = Field(min_length=1)
    year: str = Field(min_length=1)
    passcode: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    duration: str = Field(min_length=1)


class QuizResponse(BaseModel):
    id: int
    title: str
    subject_name: str
    year: str
    owner_id: int
    start_time: datetime
    end_time: datetime
    duration: str
    question_ids: List[int]

    class Config:
        from_attributes = True


class QuizQuestionsAdd(BaseModel):
    question_ids: List[int] = Field(min_length=1)


class AttemptRequest(BaseModel):
    passcode: Optional[str] = None


class AnswerIn(BaseModel):
    question_id: int
    chosen: Any = None


class SubmitRequest(BaseModel):
    answers: List[AnswerIn]


class SubmitResponse(BaseModel):
    success: bool = True
    message: str
    score: int
    total: int


class ResultEntryResponse(BaseModel):
    prn: str
    score: int
    started_at: datetime
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ResultResponse(BaseModel):
    quiz_id: int
    scores: List[ResultEntryResponse]
