from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from foodshare.core.security import actor_from_user, create_token, get_current_actor, hash_password, verify_password
from foodshare.deps import get_outbox, get_repo, get_sessions, get_settings
from foodshare.schemas import Actor, TokenOut, UserCreate
from foodshare.services.notifications import welcome

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Actor, status_code=status.HTTP_201_CREATED)
async def register(
    body: UserCreate,
    repo=Depends(get_repo),
    outbox=Depends(get_outbox),
    sessions=Depends(get_sessions),
):
    doc = await repo.create_user({
        "name": body.name.strip(),
        "email": body.email,
        "password_hash": hash_password(body.password),
        "role": body.role,
        "phone": body.phone,
        "organization_name": body.organization_name,
    })
    actor = actor_from_user(doc)
    sessions.publish("signed-up", actor)
    outbox.enqueue(welcome(actor.name, actor.email))
    return actor


@router.post("/token", response_model=TokenOut)
async def token(
    form: OAuth2PasswordRequestForm = Depends(),
    repo=Depends(get_repo),
    settings=Depends(get_settings),
    sessions=Depends(get_sessions),
):
    user = await repo.find_user_by_email(form.username)
    if not user or not verify_password(form.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    actor = actor_from_user(user)
    access = create_token({"sub": actor.id, "role": actor.role.value, "email": actor.email}, settings)
    sessions.publish("signed-in", actor)
    return {"access_token": access, "token_type": "bearer", "role": actor.role, "email": actor.email}


@router.get("/me", response_model=Actor)
async def me(actor: Actor = Depends(get_current_actor)):
    return actor


@router.post("/logout")
async def logout(actor: Actor = Depends(get_current_actor), sessions=Depends(get_sessions)):
    # tokens are stateless; signing out only tells listeners
    sessions.publish("signed-out", actor)
    return {"ok": True}
