"""
Models package initialization
Import all models here to ensure they are registered with SQLAlchemy
"""

from testmate.models.user import Account, AccountRole
from testmate.models.token import OneTimeToken, TokenPurpose
from testmate.models.content import Subject, Question, Quiz, ALL_YEARS
from testmate.models.result import ResultLedger, ResultEntry

__all__ = [
    "Account",
    "AccountRole",
    "OneTimeToken",
    "TokenPurpose",
    "Subject",
    "Question",
    "Quiz",
    "ALL_YEARS",
    "ResultLedger",
    "ResultEntry",
]
