"""
Request-scoped dependencies.

Every service call receives a ``RequestContext`` carrying the persistence gateway and the
clock, so tests can swap either one through ``app.dependency_overrides``.
"""

from dataclasses import dataclass

from fastapi import Depends

from reportgate.clock import Clock, SystemClock
from reportgate.services.store import Store


@dataclass(frozen=True, slots=True)
class RequestContext:
    store: Store
    clock: Clock


def get_store() -> Store:
    """Dependency for FastAPI endpoints to get the persistence gateway."""
    return Store()


def get_clock() -> Clock:
    return SystemClock()


def get_request_context(
    store: Store = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> RequestContext:
    return RequestContext(store=store, clock=clock)
