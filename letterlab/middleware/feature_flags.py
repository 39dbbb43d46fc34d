"""Feature flag checks for optional routes."""

from typing import Callable

from fastapi import HTTPException

from letterlab import config

FLAGS: dict[str, Callable[[], bool]] = {
    "email": config.email_enabled,
    "chat": config.chat_enabled,
}


def require_feature(name: str):
    """Return a FastAPI dependency that 404s while the named flag is off."""
    is_enabled = FLAGS[name]

    async def _check():
        if not is_enabled():
            raise HTTPException(status_code=404, detail="Not found")
    return _check


def enabled_features() -> dict[str, bool]:
    return {name: check() for name, check in FLAGS.items()}
