from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from testmate.database import Base, utcnow
import enum


class TokenPurpose(str, enum.Enum):
    VERIFICATION = "verification"
    RESET = "reset"


class OneTimeToken(Base):
    """Hashed single-use secret for email verification or password reset."""
    __tablename__ = "one_time_tokens"
    __table_args__ = (UniqueConstraint("owner_id", "purpose", name="uq_token_owner_purpose"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    purpose = Column(SQLEnum(TokenPurpose), nullable=False)
    token_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("Account", back_populates="one_time_tokens")
