"""Per-entity persistence over a SQLAlchemy session.

Routers receive these through FastAPI dependencies instead of querying the
session directly. References between records are stored as bare id lists;
``populate`` resolves them into full records for read responses and silently
drops ids that no longer resolve.
"""

import logging
from datetime import datetime
from typing import Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from canteen.backend.models import Allergenic, Meal, MealRating, Menu, User
from canteen.backend.models.menu import day_bounds

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


class StoreConflict(Exception):
    """A write was rejected by a uniqueness constraint."""


class _Repository(Generic[RecordT]):
    model: Type[RecordT]

    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[RecordT]:
        return self.db.query(self.model).order_by(self.model.id).all()

    def get(self, record_id: str) -> Optional[RecordT]:
        return self.db.get(self.model, record_id)

    def add(self, record: RecordT) -> RecordT:
        self.db.add(record)
        self._commit()
        self.db.refresh(record)
        return record

    def save(self, record: RecordT) -> RecordT:
        self._commit()
        self.db.refresh(record)
        return record

    def delete(self, record: RecordT) -> None:
        self.db.delete(record)
        self._commit()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("%s write rejected: %s", self.model.__name__, exc.orig)
            raise StoreConflict(str(exc.orig)) from exc


class UserRepository(_Repository[User]):
    model = User

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()


class AllergenicRepository(_Repository[Allergenic]):
    model = Allergenic

    def get_by_name(self, name: str) -> Optional[Allergenic]:
        return self.db.query(Allergenic).filter(Allergenic.name == name).first()


class MealRepository(_Repository[Meal]):
    model = Meal

    def populate(self, meals: Sequence[Meal]) -> List[Tuple[Meal, List[Allergenic]]]:
        wanted = {aid for meal in meals for aid in meal.allergenic_ids or []}
        found = {}
        if wanted:
            found = {
                allergenic.id: allergenic
                for allergenic in self.db.query(Allergenic)
                .filter(Allergenic.id.in_(sorted(wanted)))
                .all()
            }
        return [
            (meal, [found[aid] for aid in meal.allergenic_ids or [] if aid in found])
            for meal in meals
        ]

    @staticmethod
    def find_rating(meal: Meal, user_id: str) -> Optional[MealRating]:
        for rating in meal.ratings:
            if rating.user_id == user_id:
                return rating
        return None

    def add_rating(self, meal: Meal, rating: MealRating) -> MealRating:
        meal.ratings.append(rating)
        self._commit()
        self.db.refresh(rating)
        return rating

    def remove_rating(self, meal: Meal, rating: MealRating) -> None:
        meal.ratings.remove(rating)
        self._commit()


class MenuRepository(_Repository[Menu]):
    model = Menu

    def find_on_day(
        self, value: datetime, exclude_id: Optional[str] = None
    ) -> Optional[Menu]:
        day_start, day_end = day_bounds(value)
        query = self.db.query(Menu).filter(Menu.date >= day_start, Menu.date < day_end)
        if exclude_id is not None:
            query = query.filter(Menu.id != exclude_id)
        return query.first()

    def populate(self, menus: Sequence[Menu]) -> List[Tuple[Menu, List[Meal]]]:
        wanted = {mid for menu in menus for mid in menu.meal_ids or []}
        found = {}
        if wanted:
            meals = self.db.query(Meal).filter(Meal.id.in_(sorted(wanted))).all()
            found = {meal.id: meal for meal in meals}
        return [
            (menu, [found[mid] for mid in menu.meal_ids or [] if mid in found])
            for menu in menus
        ]
