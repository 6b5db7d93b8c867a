import structlog

from reportgate.config import Settings, settings
from reportgate.context import RequestContext
from reportgate.errors import (
    StatusError,
    challenge_expired,
    challenge_not_found,
    challenge_used,
    invalid_proof,
)
from reportgate.models.challenge import Challenge
from reportgate.models.report import PendingReport
from reportgate.services.pow_service import verify
from reportgate.services.store import Transaction

logger = structlog.get_logger()


def submit_report(
    ctx: RequestContext,
    challenge_nonce: str,
    solution_nonce: str,
    report_data: str,
    config: Settings = settings,
) -> PendingReport:
    """
    Redeem a challenge and commit the report it pays for.

    Runs as one transaction: the challenge is checked, consumed and the report inserted
    together, or nothing changes. At most one call per challenge nonce ever succeeds;
    every other call fails with ``challenge_used``.

    Raises StatusError (bad request) if the challenge is unknown, already used, expired,
    or the proof is invalid; StatusError (internal) if the store fails.
    """

    def commit(txn: Transaction) -> PendingReport:
        now = ctx.clock.now()

        challenge = txn.get(Challenge, challenge_nonce)
        if challenge is None:
            raise challenge_not_found()

        if challenge.consumed:
            raise challenge_used()

        if challenge.is_expired(now):
            raise challenge_expired()

        if not verify(challenge, solution_nonce, max_solution_bytes=config.pow_max_solution_bytes):
            raise invalid_proof()

        # Conditional write: a concurrent submission that committed after our read
        # leaves nothing to update
        if not txn.set(Challenge, challenge_nonce, {"consumed": True}, expected={"consumed": False}):
            raise challenge_used()

        return txn.create(
            PendingReport(
                data=report_data,
                challenge_nonce=challenge_nonce,
                committed_at=now,
            )
        )

    try:
        report = ctx.store.run_transaction(commit)
    except StatusError as e:
        logger.info(
            "report_rejected",
            kind=e.kind.value,
            reason=e.reason.value if e.reason else None,
        )
        raise

    logger.info("report_committed", report_id=report.id)
    return report
