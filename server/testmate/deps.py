"""
FastAPI dependencies: core components bound to the request session, the
bearer-token authentication boundary and the reset-link gate.
"""
from typing import Callable, Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from testmate.database import get_db, utcnow
from testmate.errors import AuthError, NotFoundError, ValidationError
from testmate.models import Account, AccountRole, TokenPurpose
from testmate.services.attempts import QuizAttemptCoordinator
from testmate.services.credentials import CredentialStore
from testmate.services.mailer import Mailer
from testmate.services.one_time_tokens import OneTimeTokenService
from testmate.services.scoring import ScoringEngine
from testmate.services.session_tokens import SessionTokenRegistry

bearer_scheme = HTTPBearer(auto_error=False)


def get_clock() -> Callable:
    return utcnow


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_credentials(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_one_time_tokens(
    db: Session = Depends(get_db), clock: Callable = Depends(get_clock)
) -> OneTimeTokenService:
    return OneTimeTokenService(db, clock=clock)


def get_session_tokens(
    db: Session = Depends(get_db), clock: Callable = Depends(get_clock)
) -> SessionTokenRegistry:
    return SessionTokenRegistry(db, clock=clock)


def get_coordinator(
    db: Session = Depends(get_db), clock: Callable = Depends(get_clock)
) -> QuizAttemptCoordinator:
    return QuizAttemptCoordinator(db, clock=clock)


def get_scoring(db: Session = Depends(get_db)) -> ScoringEngine:
    return ScoringEngine(db)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthError()
    return credentials.credentials


def get_current_account(
    token: str = Depends(get_bearer_token),
    registry: SessionTokenRegistry = Depends(get_session_tokens),
    store: CredentialStore = Depends(get_credentials),
) -> Account:
    """
    Resolve the bearer token to its account.

    Besides signature and expiry the token must still be in the account's
    active list, so logout takes effect immediately.
    """
    account_id = registry.verify(token)
    account = store.db.get(Account, account_id)
    if account is None or not registry.is_active(account, token):
        raise AuthError()
    return account


def require_role(*roles: AccountRole):
    def checker(account: Account = Depends(get_current_account)) -> Account:
        if account.role not in roles:
            raise AuthError("unauthorized access!")
        return account
    return checker


def valid_reset_account(
    token: str = Query(default=""),
    id: int = Query(default=0),
    store: CredentialStore = Depends(get_credentials),
    tokens: OneTimeTokenService = Depends(get_one_time_tokens),
) -> Account:
    """Gate in front of the password change: the reset link must carry a live secret."""
    if not token or not id:
        raise ValidationError("Invalid request!")
    account = store.db.get(Account, id)
    if account is None:
        raise NotFoundError("User not found!")
    tokens.validate(account, TokenPurpose.RESET, token)
    return account
