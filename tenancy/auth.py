# tenancy/auth.py
from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException

from .domain.termination import Actor, Party


def get_actor(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_party: Optional[str] = Header(default=None, alias="X-User-Party"),
) -> Actor:
    """
    Dev identity: the caller states who they are and which side of the lease
    they act for. Identity and authorization proper live in front of this
    service.
    """
    user_id = str(x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id")

    party = str(x_user_party or "").strip().lower()
    try:
        return Actor(party=Party(party), user_id=user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-User-Party must be tenant|landlord")
