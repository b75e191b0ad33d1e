"""
One-Time Token Service.

Per (account, purpose) a token moves NONE -> ISSUED -> {CONSUMED, EXPIRED}.
Only a bcrypt hash of the secret is stored and expiry is passive: a row older
than its TTL is treated as absent and purged the next time it is read.
"""
import logging
import secrets
import string
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from testmate.config import settings
from testmate.database import utcnow
from testmate.errors import AlreadyIssued, InvalidToken, TokenNotFound
from testmate.models import Account, OneTimeToken, TokenPurpose
from testmate.services.credentials import compare, hash_password

logger = logging.getLogger(__name__)


def generate_otp(length: int) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_reset_secret() -> str:
    return secrets.token_hex(30)


_NOT_FOUND = {
    TokenPurpose.VERIFICATION: "Sorry, user not found!",
    TokenPurpose.RESET: "Reset token not found!",
}
_INVALID = {
    TokenPurpose.VERIFICATION: "Please provide a valid token!",
    TokenPurpose.RESET: "Reset token is invalid.",
}


class OneTimeTokenService:
    def __init__(
        self,
        db: Session,
        clock: Callable = utcnow,
        rounds: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.rounds = rounds

    def ttl(self, purpose: TokenPurpose) -> timedelta:
        if purpose is TokenPurpose.VERIFICATION:
            return timedelta(minutes=settings.otp_ttl_minutes)
        return timedelta(minutes=settings.reset_ttl_minutes)

    def live_token(self, account: Account, purpose: TokenPurpose) -> Optional[OneTimeToken]:
        row = (
            self.db.query(OneTimeToken)
            .filter(OneTimeToken.owner_id == account.id, OneTimeToken.purpose == purpose)
            .first()
        )
        if row is None:
            return None
        if self.clock() - row.created_at >= self.ttl(purpose):
            logger.debug("Purging expired %s token for account %s", purpose.value, account.id)
            self.db.delete(row)
            self.db.commit()
            return None
        return row

    def issue(self, account: Account, purpose: TokenPurpose) -> str:
        """Create a fresh secret and store its hash. Returns the plain secret."""
        if self.live_token(account, purpose) is not None:
            raise AlreadyIssued()

        if purpose is TokenPurpose.VERIFICATION:
            secret = generate_otp(settings.otp_length)
        else:
            secret = generate_reset_secret()

        self.db.add(OneTimeToken(
            owner_id=account.id,
            purpose=purpose,
            token_hash=hash_password(secret, self.rounds),
            created_at=self.clock(),
        ))
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with another issue() for the same account
            self.db.rollback()
            raise AlreadyIssued()
        logger.info("Issued %s token for account %s", purpose.value, account.id)
        return secret

    def validate(self, account: Account, purpose: TokenPurpose, candidate: str) -> bool:
        """
        Check ``candidate`` against the live token.

        A verification token is consumed on success and the account marked
        verified. A reset token is left in place; the password change calls
        ``consume`` once the new password is stored.
        """
        row = self.live_token(account, purpose)
        if row is None:
            if purpose is TokenPurpose.VERIFICATION and not account.verified:
                logger.info("No pending verification for %s, dropping account", account.email)
                self.db.delete(account)
                self.db.commit()
            raise TokenNotFound(_NOT_FOUND[purpose])

        if not compare((candidate or "").strip(), row.token_hash):
            raise InvalidToken(_INVALID[purpose])

        if purpose is TokenPurpose.VERIFICATION:
            account.verified = True
            self.db.delete(row)
            self.db.commit()
            logger.info("Account %s verified", account.email)
        return True

    def consume(self, account: Account, purpose: TokenPurpose) -> bool:
        deleted = (
            self.db.query(OneTimeToken)
            .filter(OneTimeToken.owner_id == account.id, OneTimeToken.purpose == purpose)
            .delete(synchronize_session="fetch")
        )
        self.db.commit()
        return bool(deleted)
