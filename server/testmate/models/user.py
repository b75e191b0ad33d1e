from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from testmate.database import Base, utcnow
import enum


class AccountRole(str, enum.Enum):
    STUDENT = "Student"
    TEACHER = "Teacher"
    ADMIN = "Admin"


class Account(Base):
    """A registered user. Provisional until ``verified`` is set."""
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=False)  # PRN, the exam identity
    work = Column(String, nullable=False)  # stream / work group
    role = Column(SQLEnum(AccountRole), nullable=False)
    year_of_study = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    tokens = Column(JSON, nullable=False, default=list)  # [{"token": ..., "signed_at": epoch}]
    created_at = Column(DateTime, default=utcnow, nullable=False)

    one_time_tokens = relationship(
        "OneTimeToken", back_populates="owner", cascade="all, delete-orphan"
    )

    @property
    def prn(self) -> str:
        return self.phone

    def __repr__(self):
        return f"<Account {self.email} ({self.role})>"
