from __future__ import annotations

from fastapi import HTTPException, status

from contract_health.core.config import settings


def check_api_key(x_api_key: str | None) -> None:
    """Reject mutating requests without the configured key; open when API_KEY is unset."""
    if not settings.api_key:
        return
    if x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please provide a valid API key to modify contracts.",
        )
