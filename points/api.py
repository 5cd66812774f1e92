import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Path, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, load_settings
from .logging_config import setup_logging
from .models import PointAmountRequest, UserBalance, HistoryRecord
from .service import (
    PointService, PointServiceError, NotFoundError, UnknownUserError,
    LimitExceededError, InsufficientBalanceError, InvalidAmountError,
    PersistenceFailureError, LockTimeoutError,
)
from .storage import InMemoryBalanceStore, InMemoryHistoryLog

log = logging.getLogger(__name__)

UserID = Path(..., ge=0, description="Non-negative user identifier")


def build_service(settings: Settings) -> PointService:
    seed = {user_id: 0 for user_id in settings.seed_user_ids}
    return PointService(
        InMemoryBalanceStore(seed=seed),
        InMemoryHistoryLog(),
        settings=settings,
    )


def to_http_error(exc: PointServiceError | LockTimeoutError) -> HTTPException:
    if isinstance(exc, (NotFoundError, UnknownUserError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (LimitExceededError, InsufficientBalanceError, InvalidAmountError)):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, LockTimeoutError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(exc, PersistenceFailureError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))


def create_app(
    service: Optional[PointService] = None,
    settings: Optional[Settings] = None,
    root_path: str = "",
) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_file)
    point_service = service or build_service(settings)

    app = FastAPI(
        title="User Point API",
        description="Per-user point balances with charge/use history",
        version="1.0.0",
        root_path=root_path,
    )
    app.state.point_service = point_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "user-points"}

    @app.get("/point/{user_id}", response_model=UserBalance, tags=["Points"])
    def get_point(user_id: int = UserID) -> UserBalance:
        try:
            return point_service.get_balance(user_id)
        except NotFoundError as e:
            raise to_http_error(e)

    @app.get("/point/{user_id}/histories", response_model=list[HistoryRecord], tags=["Points"])
    def get_histories(user_id: int = UserID) -> list[HistoryRecord]:
        try:
            return point_service.get_history(user_id)
        except NotFoundError as e:
            raise to_http_error(e)

    @app.patch("/point/{user_id}/charge", response_model=UserBalance, tags=["Points"])
    def charge(request: PointAmountRequest, user_id: int = UserID) -> UserBalance:
        try:
            return point_service.charge(user_id, request.amount)
        except (PointServiceError, LockTimeoutError) as e:
            log.warning("charge user=%s amount=%s -> %s", user_id, request.amount, e)
            raise to_http_error(e)

    @app.patch("/point/{user_id}/use", response_model=UserBalance, tags=["Points"])
    def use(request: PointAmountRequest, user_id: int = UserID) -> UserBalance:
        try:
            return point_service.use(user_id, request.amount)
        except (PointServiceError, LockTimeoutError) as e:
            log.warning("use user=%s amount=%s -> %s", user_id, request.amount, e)
            raise to_http_error(e)

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
