from __future__ import annotations
import math
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from challengr.config import settings
from challengr.errors import InvalidReason
from challengr.models.admin_config import AdminConfig

POINTS_FOR_VALIDATOR = "points_for_validator"
DEFAULT_CHALLENGE_POINTS = "default_challenge_points"
LEADERBOARD_SIZE = "leaderboard_size"

# key -> (fallback, description)
KNOWN_KEYS: dict[str, tuple[int, str]] = {
    POINTS_FOR_VALIDATOR: (settings.validator_reward_points, "Points awarded to a validator per decision"),
    DEFAULT_CHALLENGE_POINTS: (settings.default_challenge_points, "Points for challenges without an explicit reward"),
    LEADERBOARD_SIZE: (settings.leaderboard_size, "Validators shown on the admin leaderboard"),
}


def _as_number(value) -> float | None:
    # admin_config.value is JSON; accept 5, 5.0 and "5", never nan or inf
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip()) if isinstance(value, str) else float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value) -> int | None:
    number = _as_number(value)
    return None if number is None else int(number)


async def get_number(session: AsyncSession, key: str, default: int | None = None) -> int:
    if default is None:
        default = KNOWN_KEYS[key][0] if key in KNOWN_KEYS else 0
    row = await session.get(AdminConfig, key)
    if row is None:
        return int(default)
    parsed = _as_int(row.value)
    return int(default) if parsed is None or parsed < 0 else parsed


async def set_value(session: AsyncSession, key: str, value, description: str | None = None) -> AdminConfig:
    if key in KNOWN_KEYS:
        number = _as_number(value)
        if number is None or number < 0:
            raise InvalidReason(f"{key} must be a non-negative number")
    row = await session.get(AdminConfig, key)
    if row is None:
        row = AdminConfig(key=key, value=value, description=description or KNOWN_KEYS.get(key, (None, None))[1])
        session.add(row)
    else:
        row.value = value
        if description is not None:
            row.description = description
    await session.commit()
    return row


async def list_config(session: AsyncSession) -> list[dict]:
    """Stored keys plus known keys that still run on their fallback."""
    rows = {r.key: r for r in (await session.execute(select(AdminConfig).order_by(AdminConfig.key))).scalars().all()}
    out = []
    for key in sorted(set(rows) | set(KNOWN_KEYS)):
        r = rows.get(key)
        fallback, desc = KNOWN_KEYS.get(key, (None, None))
        out.append({
            "key": key,
            "value": r.value if r else fallback,
            "description": (r.description if r and r.description else desc),
            "is_default": r is None,
        })
    return out
