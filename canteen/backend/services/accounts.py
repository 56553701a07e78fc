"""User provisioning. The API has no sign-up route; accounts are seeded."""

import logging

from sqlalchemy.orm import Session

from canteen.backend.models import User
from canteen.backend.repositories import UserRepository
from canteen.backend.schemas import EMAIL_REGEX
from canteen.backend.services.auth import hash_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 4


def create_user(db: Session, *, name: str, email: str, password: str) -> User:
    name = name.strip()
    email = email.strip().lower()
    if not name:
        raise ValueError("Name is required")
    if not EMAIL_REGEX.match(email):
        raise ValueError("Invalid email format")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    repo = UserRepository(db)
    if repo.get_by_email(email):
        raise ValueError("Email already registered")

    user = repo.add(User(name=name, email=email, password_hash=hash_password(password)))
    logger.info("Created user %s <%s>", user.id, user.email)
    return user
