"""
Shared validation and gating helpers

Every mutation re-reads the authoritative swap session row and checks the
actor and the session status against it, never against caller-supplied ids.
"""
import enum
import logging
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.exceptions import AuthorizationDenied, Conflict, NotFound, ValidationError
from skillswap.models.swap_session import SwapSession, SwapSessionStatus

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=enum.Enum)


def parse_enum(enum_cls: Type[E], value: Any, field: str) -> E:
    """Coerce a raw value (or enum member) into enum_cls, raising ValidationError otherwise"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field}: {value!r}. Must be one of: {allowed}", field=field)


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def to_dict(instance, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Column values of an ORM instance as a plain dict"""
    skip = set(exclude)
    return {
        column.key: getattr(instance, column.key)
        for column in instance.__table__.columns
        if column.key not in skip
    }


async def load_swap_session(db: AsyncSession, swap_session_id: int, for_update: bool = False) -> SwapSession:
    stmt = select(SwapSession).where(SwapSession.id == swap_session_id)
    if for_update:
        stmt = stmt.with_for_update()
    swap_session = (await db.execute(stmt)).scalar_one_or_none()
    if swap_session is None:
        raise NotFound("Swap session not found", details={"swap_session_id": swap_session_id})
    return swap_session


def ensure_participant(swap_session: SwapSession, user_id: int, action: str) -> None:
    if not swap_session.has_participant(user_id):
        logger.warning(f"User {user_id} denied '{action}' on swap session {swap_session.id}")
        raise AuthorizationDenied(f"Not authorized to {action} for this swap session")


def ensure_session_status(swap_session: SwapSession, allowed: Iterable[SwapSessionStatus], action: str) -> None:
    allowed_values = [status.value for status in allowed]
    if swap_session.status not in allowed_values:
        if len(allowed_values) == 1:
            expected = allowed_values[0].lower()
        else:
            expected = " or ".join(value.lower() for value in allowed_values)
        raise Conflict(
            f"Cannot {action}: swap session is not {expected}",
            details={"swap_session_id": swap_session.id, "status": swap_session.status},
        )


async def load_participant_session(
    db: AsyncSession,
    swap_session_id: int,
    user_id: int,
    action: str,
    allowed: Optional[Iterable[SwapSessionStatus]] = None,
    for_update: bool = False,
) -> SwapSession:
    """Load a swap session and apply the participant check, then the optional status check"""
    swap_session = await load_swap_session(db, swap_session_id, for_update=for_update)
    ensure_participant(swap_session, user_id, action)
    if allowed is not None:
        ensure_session_status(swap_session, allowed, action)
    return swap_session
