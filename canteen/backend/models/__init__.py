from .allergenic import Allergenic
from .meal import MEAL_TYPES, Meal, MealRating
from .menu import Menu
from .user import User

__all__ = [
    "User",
    "Allergenic",
    "Meal",
    "MealRating",
    "MEAL_TYPES",
    "Menu",
]
