from reportgate.schemas.challenge import ChallengeRef, ChallengeResponse
from reportgate.schemas.report import (
    ChallengeSolution,
    ReportData,
    ReportResponse,
    ReportSubmission,
    Solution,
)

__all__ = [
    "ChallengeRef",
    "ChallengeResponse",
    "ChallengeSolution",
    "ReportData",
    "ReportResponse",
    "ReportSubmission",
    "Solution",
]
