from fastapi import APIRouter, Depends, Request

from .dependencies import get_current_user
from ..config import settings
from ..models import User
from ..rate_limit import limiter
from ..schemas import RegisterInput, UserRead, envelope
from ..services import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Public registration (passenger accounts only)
# ---------------------------------------------------------------------------

@router.post("/register", status_code=201)
@limiter.limit(settings.register_rate_limit)
def register(
    request: Request,
    body: RegisterInput,
    users: UserService = Depends(UserService.dependency()),
) -> dict:
    user = users.create_user(body)
    return envelope({"user": user.model_dump(by_alias=True, mode="json")},
                    "Registration successful! Please log in.")


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

@router.get("/me")
def me(current_user: User = Depends(get_current_user)) -> dict:
    return envelope(UserRead.model_validate(current_user))
