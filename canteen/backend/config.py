import os
from typing import List, Optional

DEFAULT_MYSQL_URL = "mysql+pymysql://user:password@db:3306/canteen_db"
DATABASE_URL = os.getenv("DATABASE_URL", DEFAULT_MYSQL_URL)

JWT_SECRET = os.getenv("JWT_SECRET", "change_this_secret_in_production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "jwt-token")

# unset or empty means the session token never expires
_ttl = os.getenv("SESSION_TTL_SECONDS")
SESSION_TTL_SECONDS: Optional[int] = int(_ttl) if _ttl else None

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_default_allowed_origins = [
    "http://localhost",
    "http://127.0.0.1",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:4200",
    "http://127.0.0.1:4200",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]


def allowed_origins() -> List[str]:
    env_origins = os.getenv("ALLOWED_ORIGINS")
    if env_origins:
        return [origin.strip() for origin in env_origins.split(",") if origin.strip()]
    return list(_default_allowed_origins)
