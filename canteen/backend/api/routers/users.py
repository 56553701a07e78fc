import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Response
from pydantic import Field

from canteen.backend.api.dependencies import get_user_repository, require_session
from canteen.backend.api.errors import NotFound, Unauthorized
from canteen.backend.config import SESSION_COOKIE_NAME
from canteen.backend.models import User
from canteen.backend.repositories import UserRepository
from canteen.backend.schemas import ResponseModel, SignInRequest
from canteen.backend.services.auth import UserClaims, issue_token, verify_password
from canteen.backend.validation import PayloadValidationError, validate_payload

logger = logging.getLogger(__name__)

router = APIRouter()

UNKNOWN_EMAIL_MESSAGE = "no user with the given email found"
BAD_CREDENTIALS_MESSAGE = "password or email not valid"


class UserResponse(ResponseModel):
    id: str = Field(..., alias="_id")
    name: str
    email: str


def _to_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, name=user.name, email=user.email)


@router.post("/sign-in", response_model=UserResponse)
def sign_in(
    response: Response,
    body: Dict[str, Any] = Body(...),
    repo: UserRepository = Depends(get_user_repository),
):
    # sign-in answers every rejected payload with 404, like an unknown email
    try:
        req = validate_payload(SignInRequest, body)
    except PayloadValidationError as exc:
        raise NotFound(exc.message)

    user = repo.get_by_email(req.email)
    if user is None:
        raise NotFound(UNKNOWN_EMAIL_MESSAGE)
    if not verify_password(req.password, user.password_hash):
        logger.info("Rejected sign-in for %s", req.email)
        raise Unauthorized(BAD_CREDENTIALS_MESSAGE)

    response.set_cookie(SESSION_COOKIE_NAME, issue_token(user), httponly=True)
    return _to_response(user)


@router.get("/sign-out")
def sign_out():
    response = Response(status_code=200)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


@router.get("/me", response_model=UserResponse)
def read_me(
    claims: UserClaims = Depends(require_session),
    repo: UserRepository = Depends(get_user_repository),
):
    user = repo.get(claims.user_id)
    if user is None:
        raise NotFound("The signed-in user no longer exists")
    return _to_response(user)
