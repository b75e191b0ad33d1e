"""
Session Token Registry.

Issues signed JWTs and keeps each account's list of active tokens. The list is
pruned eagerly: every login rewrites it without the records older than the
retention window.
"""
import logging
import secrets
from datetime import timezone
from typing import Callable, Optional

import jwt
from sqlalchemy.orm import Session

from testmate.config import settings
from testmate.database import utcnow
from testmate.errors import InvalidSignature, TokenExpired
from testmate.models import Account

logger = logging.getLogger(__name__)


class SessionTokenRegistry:
    def __init__(
        self,
        db: Session,
        clock: Callable = utcnow,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        lifetime_seconds: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.lifetime_seconds = lifetime_seconds or settings.session_token_seconds

    def now(self) -> float:
        return self.clock().replace(tzinfo=timezone.utc).timestamp()

    def issue(self, account_id: int) -> str:
        issued_at = int(self.now())
        payload = {
            "userId": account_id,
            "iat": issued_at,
            "exp": issued_at + self.lifetime_seconds,
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """
        Signature and expiry check only; the stored list is not consulted.

        Expiry is judged against the registry clock, the same one ``issue``
        stamps ``iat`` and ``exp`` with.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "userId"]},
            )
        except jwt.InvalidTokenError:
            raise InvalidSignature()
        if payload["exp"] <= self.now():
            raise TokenExpired()
        return payload["userId"]

    def record_and_prune(self, account: Account, token: str) -> None:
        now = self.now()
        kept = [
            record for record in (account.tokens or [])
            if now - float(record.get("signed_at", 0)) < self.lifetime_seconds
        ]
        dropped = len(account.tokens or []) - len(kept)
        if dropped:
            logger.debug("Pruned %d stale session tokens for account %s", dropped, account.id)
        account.tokens = [*kept, {"token": token, "signed_at": now}]
        self.db.commit()

    def revoke(self, account: Account, token: str) -> None:
        account.tokens = [record for record in (account.tokens or []) if record.get("token") != token]
        self.db.commit()

    def is_active(self, account: Account, token: str) -> bool:
        return any(record.get("token") == token for record in (account.tokens or []))
