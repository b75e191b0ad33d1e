"""
Credential Store.

Owns password hashing and the lookup that turns an (email, password, role)
triple into an Account.
"""
import logging
from typing import Optional

import bcrypt
from sqlalchemy.orm import Session

from testmate.config import settings
from testmate.errors import (
    ConflictError,
    IncorrectEmail,
    IncorrectPassword,
    NotFoundError,
    SignupRequired,
    ValidationError,
)
from testmate.models import Account, AccountRole

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 7
PASSWORD_MAX_LENGTH = 16


def hash_password(plain: str, rounds: Optional[int] = None) -> str:
    """One-way salted bcrypt hash."""
    salt = bcrypt.gensalt(rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def compare(plain: str, hashed: str) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # bcrypt refuses inputs over 72 bytes and malformed hashes
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def check_password_rules(password: str) -> str:
    """Length is judged on the trimmed value; the password itself is kept as typed."""
    password = password or ""
    if not PASSWORD_MIN_LENGTH <= len(password.strip()) <= PASSWORD_MAX_LENGTH:
        raise ValidationError(
            f"Password must be {PASSWORD_MIN_LENGTH} to {PASSWORD_MAX_LENGTH} characters long!"
        )
    return password


class CredentialStore:
    """Account lookup, registration and password checks."""

    def __init__(self, db: Session, rounds: Optional[int] = None):
        self.db = db
        self.rounds = rounds

    def get(self, account_id: int) -> Account:
        account = self.db.get(Account, account_id)
        if account is None:
            raise NotFoundError("Sorry, user not found!")
        return account

    def find_by_email(self, email: str) -> Optional[Account]:
        return self.db.query(Account).filter(Account.email == normalize_email(email)).first()

    def find_student_by_prn(self, prn: str) -> Optional[Account]:
        return (
            self.db.query(Account)
            .filter(Account.role == AccountRole.STUDENT, Account.phone == prn)
            .first()
        )

    def delete(self, account: Account) -> None:
        logger.info("Deleting provisional account %s", account.email)
        self.db.delete(account)
        self.db.commit()

    def discard_if_unverified(self, account: Optional[Account]) -> None:
        """Unverified accounts are abandoned signups: drop them and ask for a new one."""
        if account is not None and not account.verified:
            self.delete(account)
            raise SignupRequired()

    def register(
        self,
        name: str,
        email: str,
        phone: str,
        work: str,
        password: str,
        role: AccountRole,
        year_of_study: Optional[str] = None,
    ) -> Account:
        password = check_password_rules(password)
        email = normalize_email(email)
        existing = self.find_by_email(email)
        if existing is not None:
            if existing.verified:
                raise ConflictError("User already registered, please login!")
            self.delete(existing)
        phone = phone.strip()
        if role == AccountRole.STUDENT:
            # the PRN keys the student's result ledger entries
            holder = self.find_student_by_prn(phone)
            if holder is not None:
                if holder.verified:
                    raise ConflictError("PRN already registered!")
                self.delete(holder)

        account = Account(
            name=name.strip(),
            email=email,
            phone=phone,
            work=work.strip(),
            role=role,
            year_of_study=year_of_study,
            password_hash=hash_password(password, self.rounds),
            verified=False,
            tokens=[],
        )
        self.db.add(account)
        self.db.commit()
        logger.info("Registered %s account %s", role.value, email)
        return account

    def authenticate(self, email: str, plain: str, role: AccountRole) -> Account:
        """
        Resolve credentials to a verified account.

        Raises IncorrectEmail when no account has this email under ``role``,
        IncorrectPassword when the hash does not match, and SignupRequired
        (after deleting it) when the account was never verified.
        """
        account = self.find_by_email(email)
        self.discard_if_unverified(account)
        if account is None or account.role != role:
            raise IncorrectEmail()
        if not compare(plain, account.password_hash):
            raise IncorrectPassword()
        return account

    def change_password(self, account: Account, new_password: str) -> None:
        if compare(new_password, account.password_hash):
            raise ValidationError("New password must be different.")
        account.password_hash = hash_password(check_password_rules(new_password), self.rounds)
        self.db.commit()
        logger.info("Password changed for %s", account.email)
