from datetime import datetime, time, timedelta
from typing import Tuple

from sqlalchemy import JSON, Column, Date, DateTime, String

from canteen.backend.database import Base
from canteen.backend.identifiers import new_object_id


def day_bounds(value: datetime) -> Tuple[datetime, datetime]:
    """Return the local ``[00:00, 24:00)`` window that contains ``value``."""
    day_start = datetime.combine(value.date(), time.min)
    return day_start, day_start + timedelta(days=1)


class Menu(Base):
    __tablename__ = "menus"

    id = Column(String(24), primary_key=True, default=new_object_id)
    # naive local time
    date = Column(DateTime, nullable=False, index=True)
    # calendar day of ``date``; the unique key behind one-menu-per-day
    day = Column(Date, nullable=False, unique=True)
    meal_ids = Column(JSON, nullable=False, default=list)

    def set_date(self, value: datetime) -> None:
        self.date = value
        self.day = value.date()
