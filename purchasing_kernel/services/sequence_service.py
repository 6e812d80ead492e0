"""
SequenceService -- monotonic counter allocation for document numbers.

Responsibility:
    Hands out strictly increasing integers per named counter, optionally
    partitioned by calendar year.  PR, PO and receipt numbers, and the
    status log ``seq``, are all drawn from here.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Flushes within
    the caller's transaction and never commits.

Invariants enforced:
    - Atomic increment: a single ``UPDATE ... SET current_value =
      current_value + 1 ... RETURNING`` statement.  The row is write-locked
      from that statement until the caller's transaction ends, so two
      concurrent callers never see the same value.  The aggregate
      MAX()+1 pattern is never used.
    - Transactional: a rolled-back caller leaves a gap, never a duplicate.

Failure modes:
    - IntegrityError on concurrent first use of a counter: handled by
      creating the row inside a savepoint and retrying the increment.
"""

from sqlalchemy import BigInteger, Integer, String, UniqueConstraint, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from purchasing_kernel.db.base import Base
from purchasing_kernel.domain.numbering import NumberingScheme
from purchasing_kernel.logging_config import get_logger

logger = get_logger("services.sequence")

# Counters that are not year-scoped are stored under period_year 0 so the
# (name, period_year) unique constraint never involves NULL.
GLOBAL_PERIOD = 0


class SequenceCounter(Base):
    """One named counter, optionally partitioned by year."""

    __tablename__ = "sequence_counters"
    __table_args__ = (
        UniqueConstraint("name", "period_year", name="uq_sequence_counter_name_year"),
    )

    # "PR", "PO", "RCV", "status_log"
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    period_year: Mapped[int] = mapped_column(Integer, nullable=False, default=GLOBAL_PERIOD)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Transactional sequence numbers.

    Usage:
        seq = SequenceService(session).next_value("PO")
        year_seq = SequenceService(session).next_value("PR", year=2024)
    """

    STATUS_LOG = "status_log"

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str, year: int | None = None) -> int:
        """
        Increment and return the counter for ``(sequence_name, year)``.

        Returns an integer > 0 strictly greater than every value previously
        returned for the same key.  The first call for a new key (or a new
        year) returns 1.
        """
        period = GLOBAL_PERIOD if year is None else year

        value = self._increment(sequence_name, period)
        if value is None:
            # First use: create the row. A concurrent creator makes the
            # insert fail; the savepoint keeps the caller's work intact.
            savepoint = self._session.begin_nested()
            try:
                self._session.add(
                    SequenceCounter(name=sequence_name, period_year=period, current_value=0)
                )
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name, "period_year": period},
                )
                savepoint.rollback()
            value = self._increment(sequence_name, period)
            if value is None:
                raise RuntimeError(
                    f"Sequence counter {sequence_name}/{period} missing after creation"
                )

        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "period_year": period, "value": value},
        )
        return value

    def next_document_number(self, scheme: NumberingScheme, year: int | None = None) -> str:
        """Allocate and format the next number for a document category."""
        period = year if scheme.year_scoped else None
        value = self.next_value(scheme.sequence_name, year=period)
        return scheme.format(value, year=period)

    def _increment(self, sequence_name: str, period: int) -> int | None:
        result = self._session.execute(
            update(SequenceCounter)
            .where(
                SequenceCounter.name == sequence_name,
                SequenceCounter.period_year == period,
            )
            .values(current_value=SequenceCounter.current_value + 1)
            .returning(SequenceCounter.current_value)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()
        return result

    def current_value(self, sequence_name: str, year: int | None = None) -> int | None:
        """Current value without incrementing, or None if never used."""
        period = GLOBAL_PERIOD if year is None else year
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name,
                SequenceCounter.period_year == period,
            )
        ).scalar_one_or_none()
