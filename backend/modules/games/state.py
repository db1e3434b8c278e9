"""
Game session state machine.

Pure functions over ``GameSession`` fields and a point in time. Nothing here
touches storage: callers derive the status for reads and persist whatever
``reconcile`` returns, so the stored flags catch up with wall-clock truth
without a background scheduler.

    inactive --start--> active --(now >= expires_at)--> cooldown
    active --end--> cooldown (full cooldown from the moment of ending)
    cooldown --(now >= cooldown_until)--> inactive
"""

from datetime import datetime, timedelta
from typing import Optional

from .models import GameSession, GameSessionState, GameSessionStatus

SESSION_DURATION = timedelta(minutes=15)
COOLDOWN_DURATION = timedelta(minutes=60)


def _whole_seconds(delta: timedelta) -> int:
    return max(0, int(delta.total_seconds()))


def _cooldown_until(session: GameSession) -> Optional[datetime]:
    """Cooldown end, including one not yet written for a lapsed active session."""
    if session.cooldown_until is not None:
        return session.cooldown_until
    if session.is_active and session.expires_at is not None:
        return session.expires_at + COOLDOWN_DURATION
    return None


def derive_status(session: GameSession, now: datetime) -> GameSessionStatus:
    """
    Compute the game access state of a session at ``now``.

    Total over every combination of stored fields: a session is active only
    while its flag is set and ``now`` is before ``expires_at``; otherwise it
    is in cooldown while ``now`` is before the (possibly implied) cooldown
    end; otherwise it is inactive.
    """
    if session.is_active and session.expires_at is not None and now < session.expires_at:
        return GameSessionStatus(
            status=GameSessionState.ACTIVE,
            time_left=_whole_seconds(session.expires_at - now),
        )

    cooldown_until = _cooldown_until(session)
    if cooldown_until is not None and now < cooldown_until:
        return GameSessionStatus(
            status=GameSessionState.COOLDOWN,
            cooldown=_whole_seconds(cooldown_until - now),
        )

    return GameSessionStatus(status=GameSessionState.INACTIVE)


def reconcile(session: GameSession, now: datetime) -> Optional[GameSession]:
    """
    Return corrected fields when a time-driven transition has happened.

    Returns None when the stored fields already agree with ``now``, so
    callers only write on an observed transition.
    """
    state = derive_status(session, now).status

    if state == GameSessionState.ACTIVE:
        return None

    if state == GameSessionState.COOLDOWN:
        if session.is_active or session.cooldown_until is None:
            return session.model_copy(
                update={"is_active": False, "cooldown_until": _cooldown_until(session)}
            )
        return None

    if session.is_active or session.expires_at is not None or session.cooldown_until is not None:
        return session.model_copy(
            update={"is_active": False, "expires_at": None, "cooldown_until": None}
        )
    return None


def begin(now: datetime) -> GameSession:
    """Fields for a session starting at ``now``."""
    return GameSession(
        is_active=True,
        started_at=now,
        expires_at=now + SESSION_DURATION,
        cooldown_until=None,
    )


def terminate(session: GameSession, now: datetime) -> GameSession:
    """
    Fields for a session ended early at ``now``.

    Ending early does not shorten the cooldown: it runs the full duration
    from the moment of termination.
    """
    return session.model_copy(
        update={
            "is_active": False,
            "expires_at": now,
            "cooldown_until": now + COOLDOWN_DURATION,
        }
    )
