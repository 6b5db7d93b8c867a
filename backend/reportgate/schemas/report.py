from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from reportgate.config import settings
from reportgate.schemas.challenge import ChallengeRef


class Solution(BaseModel):
    # Hex bytes; the upper bound keeps verification cost constant
    nonce: str = Field(..., min_length=2, pattern=r"^(?:[0-9a-fA-F]{2})+$")

    @field_validator("nonce")
    @classmethod
    def validate_nonce_length(cls, v: str) -> str:
        if len(v) > settings.pow_max_solution_bytes * 2:
            raise ValueError(f"Solution nonce exceeds {settings.pow_max_solution_bytes} bytes")
        return v


class ChallengeSolution(BaseModel):
    challenge: ChallengeRef
    solution: Solution


class ReportData(BaseModel):
    data: str = Field(..., description="Opaque client-encoded report payload")

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str) -> str:
        if not v:
            raise ValueError("Report data cannot be empty")
        if len(v) > settings.max_report_size:
            raise ValueError(f"Report data exceeds {settings.max_report_size} characters")
        return v


class ReportSubmission(BaseModel):
    report: ReportData
    challenge: ChallengeSolution


class ReportResponse(BaseModel):
    report_id: str
    challenge_nonce: str
    committed_at: datetime
