import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, status
from pydantic import Field

from canteen.backend.api.dependencies import (
    get_meal_repository,
    get_menu_repository,
    valid_record_id,
)
from canteen.backend.api.errors import BadRequest, Conflict, NotFound
from canteen.backend.api.routers.meals import PopulatedMealResponse, to_populated_response
from canteen.backend.identifiers import is_valid_object_id
from canteen.backend.models import Meal, Menu
from canteen.backend.repositories import MealRepository, MenuRepository, StoreConflict
from canteen.backend.schemas import MenuIn, ResponseModel

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_MESSAGE = "A menu with the given id was not found"
DUPLICATE_DATE_MESSAGE = "A menu with the given date already exists"


class MenuResponse(ResponseModel):
    id: str = Field(..., alias="_id")
    date: datetime
    meals: List[str]


class PopulatedMenuResponse(ResponseModel):
    id: str = Field(..., alias="_id")
    date: datetime
    meals: List[PopulatedMealResponse]


def _to_response(menu: Menu) -> MenuResponse:
    return MenuResponse(id=menu.id, date=menu.date, meals=list(menu.meal_ids or []))


def _to_populated_response(
    menu: Menu, meals: List[Meal], meal_repo: MealRepository
) -> PopulatedMenuResponse:
    return PopulatedMenuResponse(
        id=menu.id,
        date=menu.date,
        meals=[
            to_populated_response(meal, allergenics)
            for meal, allergenics in meal_repo.populate(meals)
        ],
    )


def _check_meal_ids(ids: List[str]) -> None:
    for value in ids:
        if not is_valid_object_id(value):
            raise BadRequest(f"{value} is not a valid Id")


def _load(repo: MenuRepository, record_id: str) -> Menu:
    menu = repo.get(record_id)
    if menu is None:
        raise NotFound(NOT_FOUND_MESSAGE)
    return menu


@router.get("", response_model=List[PopulatedMenuResponse])
def list_menus(
    repo: MenuRepository = Depends(get_menu_repository),
    meal_repo: MealRepository = Depends(get_meal_repository),
):
    return [
        _to_populated_response(menu, meals, meal_repo)
        for menu, meals in repo.populate(repo.list())
    ]


@router.get("/{record_id}", response_model=PopulatedMenuResponse)
def get_menu(
    record_id: str = Depends(valid_record_id),
    repo: MenuRepository = Depends(get_menu_repository),
    meal_repo: MealRepository = Depends(get_meal_repository),
):
    menu = _load(repo, record_id)
    [(menu, meals)] = repo.populate([menu])
    return _to_populated_response(menu, meals, meal_repo)


@router.post("", response_model=MenuResponse, status_code=status.HTTP_201_CREATED)
def create_menu(
    body: MenuIn,
    repo: MenuRepository = Depends(get_menu_repository),
):
    if repo.find_on_day(body.date):
        raise Conflict(DUPLICATE_DATE_MESSAGE)
    _check_meal_ids(body.meals)

    menu = Menu(meal_ids=list(body.meals))
    menu.set_date(body.date)
    try:
        menu = repo.add(menu)
    except StoreConflict:
        raise Conflict(DUPLICATE_DATE_MESSAGE)
    logger.info("Created menu %s for %s", menu.id, menu.day)
    return _to_response(menu)


@router.put("/{record_id}", response_model=MenuResponse)
def update_menu(
    body: MenuIn,
    record_id: str = Depends(valid_record_id),
    repo: MenuRepository = Depends(get_menu_repository),
):
    menu = _load(repo, record_id)
    if repo.find_on_day(body.date, exclude_id=menu.id):
        raise Conflict(DUPLICATE_DATE_MESSAGE)
    _check_meal_ids(body.meals)

    menu.set_date(body.date)
    menu.meal_ids = list(body.meals)
    try:
        menu = repo.save(menu)
    except StoreConflict:
        raise Conflict(DUPLICATE_DATE_MESSAGE)
    return _to_response(menu)


@router.delete("/{record_id}", response_model=MenuResponse)
def delete_menu(
    record_id: str = Depends(valid_record_id),
    repo: MenuRepository = Depends(get_menu_repository),
):
    menu = _load(repo, record_id)
    response = _to_response(menu)
    repo.delete(menu)
    logger.info("Deleted menu %s", record_id)
    return response
