"""Router package for API endpoints."""

from .allergenics import router as allergenics
from .meals import router as meals
from .menus import router as menus
from .users import router as users

__all__ = [
    "allergenics",
    "meals",
    "menus",
    "users",
]
