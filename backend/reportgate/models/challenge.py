from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from reportgate.database import Base


class Challenge(Base):
    __tablename__ = "challenges"

    # 32 random bytes, hex encoded; doubles as the document key
    nonce: Mapped[str] = mapped_column(String(64), primary_key=True)
    work_factor: Mapped[int] = mapped_column(Integer, nullable=False)

    issued_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    consumed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
