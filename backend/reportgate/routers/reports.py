from fastapi import APIRouter, Depends, Request

from reportgate.config import settings
from reportgate.context import RequestContext, get_request_context
from reportgate.middleware.rate_limit import limiter
from reportgate.schemas.report import ReportResponse, ReportSubmission
from reportgate.services.report_service import submit_report

router = APIRouter()


@router.post("/report", response_model=ReportResponse)
@limiter.limit(settings.rate_limit_reports)
def create_report(
    request: Request,
    submission: ReportSubmission,
    ctx: RequestContext = Depends(get_request_context),
):
    """
    Submit a report, paying for it with a solved challenge.

    Each challenge can be redeemed exactly once.
    """
    report = submit_report(
        ctx,
        challenge_nonce=submission.challenge.challenge.nonce,
        solution_nonce=submission.challenge.solution.nonce,
        report_data=submission.report.data,
    )

    return ReportResponse(
        report_id=report.id,
        challenge_nonce=report.challenge_nonce,
        committed_at=report.committed_at,
    )
