"""SQLAlchemy models for the schedules and revoked_tokens tables."""

from sqlalchemy import BigInteger, Index, Text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


class RevokedTokenRecord(Base):
    """A revoked token identified by its JTI claim.

    Entries are only removed by periodic cleanup once revoked_at falls
    outside the retention window.
    """

    __tablename__ = "revoked_tokens"

    jti: Mapped[str] = mapped_column(Text, primary_key=True)
    revoked_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class ScheduleRecord(Base):
    """Stored form of a schedule.

    recipient_email, webhook_url and webhook_secret hold ciphertext when a
    data encryption key is configured.
    """

    __tablename__ = "schedules"

    __table_args__ = (
        Index("idx_schedules_next_run", "next_run"),
        Index("idx_schedules_created_by", "created_by"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    recipient: Mapped[str] = mapped_column(Text, nullable=False)
    recipient_email: Mapped[str] = mapped_column(Text, nullable=False)
    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    from_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    cron: Mapped[str] = mapped_column(Text, nullable=False)
    next_run: Mapped[int] = mapped_column(BigInteger, nullable=False)
    delivery_method: Mapped[str] = mapped_column(
        Text, nullable=False, default="email", server_default="email"
    )
    webhook_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    webhook_secret: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<ScheduleRecord {self.id} (next_run={self.next_run})>"
