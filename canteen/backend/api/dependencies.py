"""Request guards and repository providers shared by the routers.

Guards run in declaration order: the session gate is attached per router in
``canteen.backend.api.app`` and therefore runs before the path-id check, which
in turn runs before FastAPI reports body validation errors.
"""

import logging
from typing import Optional

from fastapi import Cookie, Depends, Request
from sqlalchemy.orm import Session

from canteen.backend.api.errors import BadRequest, Unauthorized
from canteen.backend.config import SESSION_COOKIE_NAME
from canteen.backend.database import get_db
from canteen.backend.identifiers import is_valid_object_id
from canteen.backend.repositories import (
    AllergenicRepository,
    MealRepository,
    MenuRepository,
    UserRepository,
)
from canteen.backend.services.auth import InvalidToken, UserClaims, verify_token

logger = logging.getLogger(__name__)


def require_session(
    request: Request,
    session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
) -> UserClaims:
    if not session_token:
        raise Unauthorized("Access denied. No token provided.")
    try:
        claims = verify_token(session_token)
    except InvalidToken as exc:
        logger.info("Rejected session token on %s: %s", request.url.path, exc)
        raise Unauthorized("Access denied. Invalid token.")
    request.state.user = claims
    return claims


def valid_record_id(record_id: str) -> str:
    if not is_valid_object_id(record_id):
        raise BadRequest("Invalid ID.")
    return record_id


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_allergenic_repository(db: Session = Depends(get_db)) -> AllergenicRepository:
    return AllergenicRepository(db)


def get_meal_repository(db: Session = Depends(get_db)) -> MealRepository:
    return MealRepository(db)


def get_menu_repository(db: Session = Depends(get_db)) -> MenuRepository:
    return MenuRepository(db)
