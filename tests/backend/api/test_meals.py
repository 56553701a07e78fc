from types import SimpleNamespace

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from canteen.backend.api.app import register_routes
from canteen.backend.api.dependencies import get_meal_repository
from canteen.backend.api.errors import register_exception_handlers
from canteen.backend.config import SESSION_COOKIE_NAME
from canteen.backend.database import Base, get_db
from canteen.backend.identifiers import new_object_id
from canteen.backend.models import Allergenic, Meal, MealRating
from canteen.backend.repositories import MealRepository
from canteen.backend.services.auth import issue_token

USER_ID = "12345randomId"


def _build_test_app():
    app = FastAPI()
    register_exception_handlers(app)
    register_routes(app)
    return app


def _setup_database():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with SessionLocal() as session:
        gluten = Allergenic(id=new_object_id(), name="Gluten")
        milk = Allergenic(id=new_object_id(), name="Milk")
        session.add_all([gluten, milk])
        session.flush()

        meal = Meal(
            id=new_object_id(),
            type="From the kitchen",
            description="Lasagne",
            price=4.5,
            allergenic_ids=[milk.id, gluten.id],
        )
        session.add(meal)
        session.commit()
        ids = SimpleNamespace(gluten=gluten.id, milk=milk.id, meal=meal.id)
    return engine, SessionLocal, ids


def _client(app, SessionLocal):
    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    user = SimpleNamespace(id=new_object_id(), name="John Doh", email="john@doh.com")
    client.cookies.set(SESSION_COOKIE_NAME, issue_token(user))
    return client


def _meal_payload(**overrides):
    payload = {
        "type": "Meat free",
        "description": "Vegetable curry",
        "price": 3.2,
        "allergenics": [],
    }
    payload.update(overrides)
    return payload


def test_list_and_get_populate_allergenics():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            list_resp = client.get("/api/meals")
            assert list_resp.status_code == 200
            meals = list_resp.json()
            assert len(meals) == 1
            assert [a["name"] for a in meals[0]["allergenics"]] == ["Milk", "Gluten"]
            assert meals[0]["ratings"] == []

            get_resp = client.get(f"/api/meals/{ids.meal}")
            assert get_resp.status_code == 200
            body = get_resp.json()
            assert body["_id"] == ids.meal
            assert body["type"] == "From the kitchen"
            assert body["allergenics"][0] == {
                "_id": ids.milk,
                "name": "Milk",
                "picture": None,
            }
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_deleted_allergenic_is_dropped_from_populated_meal():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            assert client.delete(f"/api/allergenics/{ids.milk}").status_code == 200

            body = client.get(f"/api/meals/{ids.meal}").json()
            assert [a["name"] for a in body["allergenics"]] == ["Gluten"]

        with SessionLocal() as session:
            meal = session.get(Meal, ids.meal)
            assert meal.allergenic_ids == [ids.milk, ids.gluten]
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_create_meal():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            resp = client.post(
                "/api/meals", json=_meal_payload(allergenics=[ids.gluten])
            )
            assert resp.status_code == 201
            body = resp.json()
            assert body["type"] == "Meat free"
            assert body["price"] == 3.2
            assert body["allergenics"] == [ids.gluten]
            assert "ratings" not in body

            # id shape is checked, existence is not
            unknown = new_object_id()
            resp = client.post("/api/meals", json=_meal_payload(allergenics=[unknown]))
            assert resp.status_code == 201
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_create_meal_validation_messages():
    engine, SessionLocal, _ = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            resp = client.post("/api/meals", json=_meal_payload(type="Dessert"))
            assert resp.status_code == 400
            assert resp.json()["message"] == (
                '"type" must be one of [From the kitchen, Meat free, Sides, '
                "Snack of the day, Chefs theatre, Soup kitchen]"
            )

            resp = client.post("/api/meals", json=_meal_payload(price=101))
            assert resp.status_code == 400
            assert resp.json()["message"] == '"price" must be less than or equal to 100'

            resp = client.post("/api/meals", json=_meal_payload(price=-1))
            assert resp.json()["message"] == '"price" must be larger than or equal to 0'

            resp = client.post("/api/meals", json=_meal_payload(allergenics=["123"]))
            assert resp.status_code == 400
            assert resp.json()["message"] == "123 is not a valid Id"

            payload = _meal_payload()
            del payload["description"]
            resp = client.post("/api/meals", json=payload)
            assert resp.json()["message"] == '"description" is required'

            with SessionLocal() as session:
                assert session.query(Meal).count() == 1
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_update_meal_keeps_ratings():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            rating_resp = client.post(
                f"/api/meals/ratings/{ids.meal}", json={"userId": USER_ID, "rating": 4}
            )
            assert rating_resp.status_code == 201

            resp = client.put(
                f"/api/meals/{ids.meal}",
                json=_meal_payload(type="Sides", price=2, allergenics=[ids.gluten]),
            )
            assert resp.status_code == 200
            body = resp.json()
            assert body["type"] == "Sides"
            assert body["allergenics"] == [ids.gluten]

            meal = client.get(f"/api/meals/{ids.meal}").json()
            assert len(meal["ratings"]) == 1

            missing = client.put(f"/api/meals/{new_object_id()}", json=_meal_payload())
            assert missing.status_code == 404
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_delete_meal_removes_ratings():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            client.post(
                f"/api/meals/ratings/{ids.meal}", json={"userId": USER_ID, "rating": 5}
            )
            resp = client.delete(f"/api/meals/{ids.meal}")
            assert resp.status_code == 200
            assert resp.json()["description"] == "Lasagne"

            assert client.get(f"/api/meals/{ids.meal}").status_code == 404
            assert client.delete(f"/api/meals/{ids.meal}").status_code == 404

        with SessionLocal() as session:
            assert session.query(MealRating).count() == 0
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_rate_meal_only_once():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            first = client.post(
                f"/api/meals/ratings/{ids.meal}", json={"userId": USER_ID, "rating": 4}
            )
            assert first.status_code == 201
            body = first.json()
            assert body["userId"] == USER_ID
            assert body["rating"] == 4
            assert len(body["_id"]) == 24

            second = client.post(
                f"/api/meals/ratings/{ids.meal}", json={"userId": USER_ID, "rating": 4}
            )
            assert second.status_code == 400
            assert second.json()["message"] == "You have already rated the meal"

            other = client.post(
                f"/api/meals/ratings/{ids.meal}",
                json={"userId": "anotherUser", "rating": 2, "description": "Cold"},
            )
            assert other.status_code == 201

            ratings = client.get(f"/api/meals/{ids.meal}").json()["ratings"]
            assert [r["userId"] for r in ratings] == [USER_ID, "anotherUser"]

            missing = client.post(
                f"/api/meals/ratings/{new_object_id()}",
                json={"userId": USER_ID, "rating": 4},
            )
            assert missing.status_code == 404
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_rating_validation_messages():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    url = f"/api/meals/ratings/{ids.meal}"
    try:
        with _client(app, SessionLocal) as client:
            resp = client.post(url, json={"userId": USER_ID, "rating": 0})
            assert resp.status_code == 400
            assert resp.json()["message"] == '"rating" must be larger than or equal to 1'

            resp = client.post(url, json={"userId": USER_ID, "rating": 6})
            assert resp.json()["message"] == '"rating" must be less than or equal to 5'

            resp = client.post(url, json={"userId": USER_ID, "rating": 2.5})
            assert resp.json()["message"] == '"rating" must be an integer'

            resp = client.post(url, json={"userId": "abc", "rating": 3})
            assert resp.json()["message"] == (
                '"userId" length must be at least 5 characters long'
            )

            resp = client.post(url, json={"rating": 3})
            assert resp.json()["message"] == '"userId" is required'

            resp = client.post(url, json={"userId": USER_ID, "rating": 3, "extra": 1})
            assert resp.json()["message"] == '"extra" is not allowed'
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_update_rating():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    url = f"/api/meals/ratings/{ids.meal}"
    try:
        with _client(app, SessionLocal) as client:
            client.post(url, json={"userId": USER_ID, "rating": 2, "description": "Meh"})

            resp = client.put(url, json={"userId": USER_ID, "rating": 5})
            assert resp.status_code == 200
            body = resp.json()
            assert body["rating"] == 5
            assert body["description"] == "Meh"

            resp = client.put(
                url, json={"userId": USER_ID, "rating": 5, "description": "Great"}
            )
            assert resp.json()["description"] == "Great"

            unknown = client.put(url, json={"userId": "someoneElse", "rating": 1})
            assert unknown.status_code == 404
            assert unknown.json()["message"] == "A rating with the given id was not found"

            missing_meal = client.put(
                f"/api/meals/ratings/{new_object_id()}",
                json={"userId": USER_ID, "rating": 1},
            )
            assert missing_meal.status_code == 404
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_delete_rating():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            created = client.post(
                f"/api/meals/ratings/{ids.meal}", json={"userId": USER_ID, "rating": 3}
            ).json()

            resp = client.delete(f"/api/meals/ratings/{ids.meal}/{USER_ID}")
            assert resp.status_code == 200
            assert resp.json() == created

            again = client.delete(f"/api/meals/ratings/{ids.meal}/{USER_ID}")
            assert again.status_code == 404

            assert client.get(f"/api/meals/{ids.meal}").json()["ratings"] == []

            # a removed rating frees the slot for the same user
            recreate = client.post(
                f"/api/meals/ratings/{ids.meal}", json={"userId": USER_ID, "rating": 1}
            )
            assert recreate.status_code == 201
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_malformed_meal_id_is_rejected_before_store_access():
    engine, SessionLocal, _ = _setup_database()
    app = _build_test_app()

    class ExplodingRepository:
        def __getattr__(self, name):
            raise AssertionError(f"store accessed via {name}")

    app.dependency_overrides[get_meal_repository] = ExplodingRepository
    rating = {"userId": USER_ID, "rating": 3}
    try:
        with _client(app, SessionLocal) as client:
            responses = [
                client.get("/api/meals/not-an-id"),
                client.put("/api/meals/not-an-id", json=_meal_payload()),
                client.delete("/api/meals/not-an-id"),
                client.post("/api/meals/ratings/not-an-id", json=rating),
                client.put("/api/meals/ratings/not-an-id", json=rating),
                client.delete(f"/api/meals/ratings/not-an-id/{USER_ID}"),
                # shape is checked before payload validation
                client.post("/api/meals/ratings/not-an-id", json={}),
            ]
            for resp in responses:
                assert resp.status_code == 400
                assert resp.json() == {"message": "Invalid ID."}
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_concurrent_duplicate_rating_is_rejected_by_store(monkeypatch):
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    url = f"/api/meals/ratings/{ids.meal}"
    try:
        with _client(app, SessionLocal) as client:
            assert client.post(url, json={"userId": USER_ID, "rating": 4}).status_code == 201

            # a writer that passed the lookup before the first rating landed
            monkeypatch.setattr(
                MealRepository, "find_rating", staticmethod(lambda meal, user_id: None)
            )
            resp = client.post(url, json={"userId": USER_ID, "rating": 2})
            assert resp.status_code == 400
            assert resp.json() == {"message": "You have already rated the meal"}

        with SessionLocal() as session:
            ratings = session.get(Meal, ids.meal).ratings
            assert [(r.user_id, r.rating) for r in ratings] == [(USER_ID, 4)]
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def test_rating_and_price_reject_booleans():
    engine, SessionLocal, ids = _setup_database()
    app = _build_test_app()
    try:
        with _client(app, SessionLocal) as client:
            resp = client.post(
                f"/api/meals/ratings/{ids.meal}", json={"userId": USER_ID, "rating": True}
            )
            assert resp.status_code == 400
            assert resp.json()["message"] == '"rating" must be a number'

            resp = client.post("/api/meals", json=_meal_payload(price=True))
            assert resp.status_code == 400
            assert resp.json()["message"] == '"price" must be a number'

            assert client.get(f"/api/meals/{ids.meal}").json()["ratings"] == []
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
