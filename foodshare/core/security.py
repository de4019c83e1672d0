from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from passlib.hash import pbkdf2_sha256 as hasher

from foodshare.core.config import Settings
from foodshare.deps import get_repo, get_settings
from foodshare.schemas import Actor

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def hash_password(password: str) -> str:
    return hasher.hash(password or "")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return hasher.verify(password or "", hashed)
    except (ValueError, TypeError):
        # empty or foreign hash formats
        return False


def create_token(payload: Dict[str, Any], settings: Settings) -> str:
    payload = dict(payload)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=settings.access_ttl_min)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def actor_from_user(user: dict) -> Actor:
    return Actor(
        id=str(user["_id"]),
        name=user["name"],
        email=user["email"],
        phone=user.get("phone"),
        organization_name=user.get("organization_name"),
        role=user["role"],
    )


async def get_current_actor(
    token: str = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
    repo=Depends(get_repo),
) -> Actor:
    data = decode_token(token, settings)
    user = await repo.get_user(data.get("sub", ""))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return actor_from_user(user)
