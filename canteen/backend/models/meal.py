from sqlalchemy import (
    JSON,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from canteen.backend.database import Base
from canteen.backend.identifiers import new_object_id

MEAL_TYPES = (
    "From the kitchen",
    "Meat free",
    "Sides",
    "Snack of the day",
    "Chefs theatre",
    "Soup kitchen",
)


class Meal(Base):
    __tablename__ = "meals"

    id = Column(String(24), primary_key=True, default=new_object_id)
    type = Column(String(32), nullable=False)
    description = Column(String(500), nullable=False)
    price = Column(Float, nullable=False)
    # ordered allergenic ids; not a foreign key, deletions do not cascade here
    allergenic_ids = Column(JSON, nullable=False, default=list)

    ratings = relationship(
        "MealRating",
        back_populates="meal",
        order_by="MealRating.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )


class MealRating(Base):
    __tablename__ = "meal_ratings"
    __table_args__ = (
        UniqueConstraint("meal_id", "user_id", name="uq_meal_ratings_meal_user"),
    )

    id = Column(String(24), primary_key=True, default=new_object_id)
    meal_id = Column(
        String(24),
        ForeignKey("meals.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(25), nullable=False)
    rating = Column(Integer, nullable=False)
    description = Column(String(500), nullable=True)
    position = Column(Integer, nullable=False, default=0)

    meal = relationship("Meal", back_populates="ratings")
