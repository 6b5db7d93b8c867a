from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from reportgate.services.pow_service import POW_ALGORITHM


class ChallengeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    nonce: str
    work_factor: int
    expires_at: datetime
    algorithm: str = POW_ALGORITHM


class ChallengeRef(BaseModel):
    """A challenge as echoed back by the client. ``work_factor`` is informational only."""

    nonce: str = Field(..., min_length=64, max_length=64, pattern=r"^[0-9a-f]{64}$")
    work_factor: int | None = Field(default=None, ge=1)
