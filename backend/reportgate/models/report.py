import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from reportgate.database import Base


class PendingReport(Base):
    __tablename__ = "pending_reports"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # Opaque client payload, stored verbatim
    data: Mapped[str] = mapped_column(Text, nullable=False)

    # Unique: one report per consumed challenge
    challenge_nonce: Mapped[str] = mapped_column(
        String(64), ForeignKey("challenges.nonce"), unique=True, nullable=False
    )
    committed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
