import logging
import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canteen.backend.api.dependencies import require_session
from canteen.backend.api.errors import register_exception_handlers
from canteen.backend.api.routers import allergenics as allergenics_router
from canteen.backend.api.routers import meals as meals_router
from canteen.backend.api.routers import menus as menus_router
from canteen.backend.api.routers import users as users_router
from canteen.backend.config import LOG_LEVEL, allowed_origins
from canteen.backend.database import Base, engine

API_PREFIX = "/api"

logger = logging.getLogger(__name__)


def register_routes(app: FastAPI) -> None:
    """Mount every router under ``/api``; all but users sit behind the session gate."""
    session_gate = [Depends(require_session)]

    @app.get(f"{API_PREFIX}/health")
    def health():
        return {"status": "ok"}

    # sign-in/sign-out establish the session, so users guards per route
    app.include_router(users_router, prefix=f"{API_PREFIX}/users", tags=["users"])
    app.include_router(
        allergenics_router,
        prefix=f"{API_PREFIX}/allergenics",
        tags=["allergenics"],
        dependencies=session_gate,
    )
    app.include_router(
        meals_router,
        prefix=f"{API_PREFIX}/meals",
        tags=["meals"],
        dependencies=session_gate,
    )
    app.include_router(
        menus_router,
        prefix=f"{API_PREFIX}/menus",
        tags=["menus"],
        dependencies=session_gate,
    )


logging.basicConfig(
    level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

# application instance
app = FastAPI(title="Canteen Menu API v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
register_routes(app)


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready")


def run() -> None:
    import uvicorn

    uvicorn.run(
        "canteen.backend.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    run()
