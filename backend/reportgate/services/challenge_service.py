import secrets
from datetime import datetime, timedelta

from reportgate.config import Settings, settings
from reportgate.context import RequestContext
from reportgate.models.challenge import Challenge
from reportgate.services.pow_service import CHALLENGE_NONCE_BYTES, MAX_WORK_FACTOR


def compute_work_factor(ctx: RequestContext, config: Settings = settings) -> int:
    """
    Pick the difficulty for a new challenge.

    ``fixed`` always returns the configured work factor. ``adaptive`` adds one bit per
    ``pow_adaptive_step`` outstanding challenges, up to ``pow_adaptive_max_bonus``.
    """
    base = config.pow_work_factor
    if config.pow_difficulty_policy != "adaptive":
        return base

    now = ctx.clock.now()
    outstanding = ctx.store.count(
        Challenge,
        Challenge.consumed == False,  # noqa: E712
        Challenge.expires_at >= now,
    )
    load_factor = min(outstanding // config.pow_adaptive_step, config.pow_adaptive_max_bonus)
    return min(base + load_factor, MAX_WORK_FACTOR)


def issue_challenge(ctx: RequestContext, config: Settings = settings) -> Challenge:
    """
    Generate and persist a new proof-of-work challenge.

    The challenge is only returned once it has been stored.
    """
    work_factor = compute_work_factor(ctx, config)
    issued_at = ctx.clock.now()
    challenge = Challenge(
        nonce=secrets.token_hex(CHALLENGE_NONCE_BYTES),  # 64 hex characters
        work_factor=work_factor,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(seconds=config.pow_challenge_ttl_seconds),
        consumed=False,
    )
    return ctx.store.create(challenge)


def purge_expired_challenges(ctx: RequestContext, older_than: datetime | None = None) -> int:
    """
    Delete expired challenges that were never consumed. Returns count of deleted rows.

    Consumed challenges are kept because reports reference them.
    """
    cutoff = older_than or ctx.clock.now()

    return ctx.store.run_transaction(
        lambda txn: txn.delete_where(
            Challenge,
            Challenge.expires_at < cutoff,
            Challenge.consumed == False,  # noqa: E712
        )
    )
