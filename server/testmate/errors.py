"""
Error taxonomy shared by the core components and the HTTP boundary.

Every failure a request can hit is an ``ExamError``; the handlers in
``testmate.main`` render them as ``{"error": message}``.
"""
from typing import Optional


class ExamError(Exception):
    status_code = 400
    default_message = "Something went wrong!"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ExamError):
    """Missing or malformed request fields."""
    status_code = 400
    default_message = "Please provide all the details."


class NotFoundError(ExamError):
    status_code = 404
    default_message = "Not found!"


class ConflictError(ExamError):
    status_code = 409
    default_message = "Already exists!"


class AuthError(ExamError):
    status_code = 401
    default_message = "You must be logged in"


class TransientStoreError(ExamError):
    """Unexpected storage failure; internals are never exposed."""
    status_code = 503
    default_message = "Server traffic error!"


# Credentials

class IncorrectEmail(AuthError):
    default_message = "Email is not registered"


class IncorrectPassword(AuthError):
    default_message = "Password is incorrect"


class SignupRequired(NotFoundError):
    default_message = "User is not registered, please sign-up!"


# Tokens

class InvalidSignature(AuthError):
    default_message = "You must be logged in"


class TokenExpired(AuthError):
    default_message = "Session expired, please login again"


class TokenNotFound(AuthError):
    default_message = "Token not found!"


class InvalidToken(AuthError):
    default_message = "Please provide a valid token!"


class AlreadyIssued(ConflictError):
    default_message = "Only after 10 minutes you can request for another token."


# Quizzes

class NoQuestions(NotFoundError):
    default_message = "No questions added"


class AlreadyAttempted(ConflictError):
    default_message = "Already attempted the quiz!"


class QuizNotOpen(ConflictError):
    default_message = "Quiz is not open right now."
