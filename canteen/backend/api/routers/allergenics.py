import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from canteen.backend.api.dependencies import get_allergenic_repository, valid_record_id
from canteen.backend.api.errors import Conflict, NotFound
from canteen.backend.models import Allergenic
from canteen.backend.repositories import AllergenicRepository, StoreConflict
from canteen.backend.schemas import AllergenicIn, ResponseModel

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_MESSAGE = "An allergenic with the given id was not found"
DUPLICATE_NAME_MESSAGE = "An allergenic with the given name already exists"


class AllergenicResponse(ResponseModel):
    id: str = Field(..., alias="_id")
    name: str
    picture: Optional[str] = None


def _to_response(allergenic: Allergenic) -> AllergenicResponse:
    return AllergenicResponse(
        id=allergenic.id, name=allergenic.name, picture=allergenic.picture
    )


def _load(repo: AllergenicRepository, record_id: str) -> Allergenic:
    allergenic = repo.get(record_id)
    if allergenic is None:
        raise NotFound(NOT_FOUND_MESSAGE)
    return allergenic


@router.get("", response_model=List[AllergenicResponse])
def list_allergenics(repo: AllergenicRepository = Depends(get_allergenic_repository)):
    return [_to_response(allergenic) for allergenic in repo.list()]


@router.get("/{record_id}", response_model=AllergenicResponse)
def get_allergenic(
    record_id: str = Depends(valid_record_id),
    repo: AllergenicRepository = Depends(get_allergenic_repository),
):
    return _to_response(_load(repo, record_id))


@router.post(
    "", response_model=AllergenicResponse, status_code=status.HTTP_201_CREATED
)
def create_allergenic(
    body: AllergenicIn,
    repo: AllergenicRepository = Depends(get_allergenic_repository),
):
    if repo.get_by_name(body.name):
        raise Conflict(DUPLICATE_NAME_MESSAGE)
    try:
        allergenic = repo.add(Allergenic(name=body.name, picture=body.picture))
    except StoreConflict:
        raise Conflict(DUPLICATE_NAME_MESSAGE)
    logger.info("Created allergenic %s (%s)", allergenic.id, allergenic.name)
    return _to_response(allergenic)


@router.put("/{record_id}", response_model=AllergenicResponse)
def update_allergenic(
    body: AllergenicIn,
    record_id: str = Depends(valid_record_id),
    repo: AllergenicRepository = Depends(get_allergenic_repository),
):
    allergenic = _load(repo, record_id)
    allergenic.name = body.name
    if "picture" in body.model_fields_set:
        allergenic.picture = body.picture
    try:
        allergenic = repo.save(allergenic)
    except StoreConflict:
        raise Conflict(DUPLICATE_NAME_MESSAGE)
    return _to_response(allergenic)


@router.delete("/{record_id}", response_model=AllergenicResponse)
def delete_allergenic(
    record_id: str = Depends(valid_record_id),
    repo: AllergenicRepository = Depends(get_allergenic_repository),
):
    allergenic = _load(repo, record_id)
    response = _to_response(allergenic)
    repo.delete(allergenic)
    logger.info("Deleted allergenic %s", record_id)
    return response
