import structlog
from fastapi import APIRouter, Depends, Request

from reportgate.config import settings
from reportgate.context import RequestContext, get_request_context
from reportgate.middleware.rate_limit import limiter
from reportgate.schemas.challenge import ChallengeResponse
from reportgate.services.challenge_service import issue_challenge

router = APIRouter()
logger = structlog.get_logger()


@router.get("/challenge", response_model=ChallengeResponse)
@limiter.limit(settings.rate_limit_challenges)
def create_challenge(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
):
    """
    Request a proof-of-work challenge.

    The client must solve this challenge before submitting a report.
    """
    challenge = issue_challenge(ctx)

    logger.info(
        "challenge_issued",
        work_factor=challenge.work_factor,
        expires_at=challenge.expires_at.isoformat(),
    )

    return ChallengeResponse.model_validate(challenge)
