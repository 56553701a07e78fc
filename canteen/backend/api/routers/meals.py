import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from canteen.backend.api.dependencies import get_meal_repository, valid_record_id
from canteen.backend.api.errors import BadRequest, NotFound
from canteen.backend.api.routers.allergenics import AllergenicResponse
from canteen.backend.api.routers.allergenics import _to_response as _allergenic_response
from canteen.backend.identifiers import is_valid_object_id
from canteen.backend.models import Allergenic, Meal, MealRating
from canteen.backend.repositories import MealRepository, StoreConflict
from canteen.backend.schemas import MealIn, RatingIn, ResponseModel

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_MESSAGE = "A meal with the given id was not found"
RATING_NOT_FOUND_MESSAGE = "A rating with the given id was not found"
ALREADY_RATED_MESSAGE = "You have already rated the meal"


class RatingResponse(ResponseModel):
    id: str = Field(..., alias="_id")
    user_id: str = Field(..., alias="userId")
    rating: int
    description: Optional[str] = None


class MealResponse(ResponseModel):
    id: str = Field(..., alias="_id")
    type: str
    description: str
    price: float
    allergenics: List[str]


class PopulatedMealResponse(ResponseModel):
    id: str = Field(..., alias="_id")
    type: str
    description: str
    price: float
    allergenics: List[AllergenicResponse]
    ratings: List[RatingResponse]


def _rating_response(rating: MealRating) -> RatingResponse:
    return RatingResponse(
        id=rating.id,
        user_id=rating.user_id,
        rating=rating.rating,
        description=rating.description,
    )


def _to_response(meal: Meal) -> MealResponse:
    return MealResponse(
        id=meal.id,
        type=meal.type,
        description=meal.description,
        price=meal.price,
        allergenics=list(meal.allergenic_ids or []),
    )


def to_populated_response(
    meal: Meal, allergenics: List[Allergenic]
) -> PopulatedMealResponse:
    return PopulatedMealResponse(
        id=meal.id,
        type=meal.type,
        description=meal.description,
        price=meal.price,
        allergenics=[_allergenic_response(allergenic) for allergenic in allergenics],
        ratings=[_rating_response(rating) for rating in meal.ratings],
    )


def _check_allergenic_ids(ids: List[str]) -> None:
    for value in ids:
        if not is_valid_object_id(value):
            raise BadRequest(f"{value} is not a valid Id")


def _load(repo: MealRepository, record_id: str) -> Meal:
    meal = repo.get(record_id)
    if meal is None:
        raise NotFound(NOT_FOUND_MESSAGE)
    return meal


@router.get("", response_model=List[PopulatedMealResponse])
def list_meals(repo: MealRepository = Depends(get_meal_repository)):
    return [
        to_populated_response(meal, allergenics)
        for meal, allergenics in repo.populate(repo.list())
    ]


@router.get("/{record_id}", response_model=PopulatedMealResponse)
def get_meal(
    record_id: str = Depends(valid_record_id),
    repo: MealRepository = Depends(get_meal_repository),
):
    meal = _load(repo, record_id)
    [(meal, allergenics)] = repo.populate([meal])
    return to_populated_response(meal, allergenics)


@router.post("", response_model=MealResponse, status_code=status.HTTP_201_CREATED)
def create_meal(
    body: MealIn,
    repo: MealRepository = Depends(get_meal_repository),
):
    _check_allergenic_ids(body.allergenics)
    meal = repo.add(
        Meal(
            type=body.type,
            description=body.description,
            price=body.price,
            allergenic_ids=list(body.allergenics),
        )
    )
    logger.info("Created meal %s", meal.id)
    return _to_response(meal)


@router.put("/{record_id}", response_model=MealResponse)
def update_meal(
    body: MealIn,
    record_id: str = Depends(valid_record_id),
    repo: MealRepository = Depends(get_meal_repository),
):
    _check_allergenic_ids(body.allergenics)
    meal = _load(repo, record_id)
    meal.type = body.type
    meal.description = body.description
    meal.price = body.price
    meal.allergenic_ids = list(body.allergenics)
    return _to_response(repo.save(meal))


@router.delete("/{record_id}", response_model=MealResponse)
def delete_meal(
    record_id: str = Depends(valid_record_id),
    repo: MealRepository = Depends(get_meal_repository),
):
    meal = _load(repo, record_id)
    response = _to_response(meal)
    repo.delete(meal)
    logger.info("Deleted meal %s", record_id)
    return response


@router.post(
    "/ratings/{record_id}",
    response_model=RatingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_rating(
    body: RatingIn,
    record_id: str = Depends(valid_record_id),
    repo: MealRepository = Depends(get_meal_repository),
):
    meal = _load(repo, record_id)
    if repo.find_rating(meal, body.user_id):
        raise BadRequest(ALREADY_RATED_MESSAGE)

    rating = MealRating(
        user_id=body.user_id, rating=body.rating, description=body.description
    )
    try:
        rating = repo.add_rating(meal, rating)
    except StoreConflict:
        raise BadRequest(ALREADY_RATED_MESSAGE)
    return _rating_response(rating)


@router.put("/ratings/{record_id}", response_model=RatingResponse)
def update_rating(
    body: RatingIn,
    record_id: str = Depends(valid_record_id),
    repo: MealRepository = Depends(get_meal_repository),
):
    meal = _load(repo, record_id)
    rating = repo.find_rating(meal, body.user_id)
    if rating is None:
        raise NotFound(RATING_NOT_FOUND_MESSAGE)

    rating.rating = body.rating
    if "description" in body.model_fields_set:
        rating.description = body.description
    repo.save(meal)
    return _rating_response(rating)


@router.delete("/ratings/{record_id}/{user_id}", response_model=RatingResponse)
def delete_rating(
    user_id: str,
    record_id: str = Depends(valid_record_id),
    repo: MealRepository = Depends(get_meal_repository),
):
    meal = _load(repo, record_id)
    rating = repo.find_rating(meal, user_id)
    if rating is None:
        raise NotFound(RATING_NOT_FOUND_MESSAGE)

    response = _rating_response(rating)
    repo.remove_rating(meal, rating)
    return response
