from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from testmate.database import Base, utcnow


class ResultLedger(Base):
    """Per-quiz score ledger, created and deleted together with its quiz"""
    __tablename__ = "results"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), unique=True, nullable=False)

    entries = relationship(
        "ResultEntry", back_populates="ledger", cascade="all, delete-orphan",
        order_by="ResultEntry.id",
    )


class ResultEntry(Base):
    """
    One student's slot in a ledger.

    The row is inserted as a zero-score placeholder when the questions are
    released; ``submitted_at`` stays null until the answers are graded.
    """
    __tablename__ = "result_entries"
    __table_args__ = (UniqueConstraint("result_id", "prn", name="uq_result_entry_prn"),)

    id = Column(Integer, primary_key=True, index=True)
    result_id = Column(Integer, ForeignKey("results.id", ondelete="CASCADE"), nullable=False, index=True)
    prn = Column(String, nullable=False)
    score = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    submitted_at = Column(DateTime, nullable=True)

    ledger = relationship("ResultLedger", back_populates="entries")

    @property
    def is_placeholder(self) -> bool:
        return self.submitted_at is None
