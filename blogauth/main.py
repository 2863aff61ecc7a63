import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogauth.api.router import api_router
from blogauth.config import settings
from blogauth.db import SessionLocal, engine
from blogauth.models import audit, revocation, session_token, user  # noqa: F401
from blogauth.models.base import Base
from blogauth.models.user import Role, User
from blogauth.services.auth import AuthService
from blogauth.services.errors import StoreUnavailable
from blogauth.services.login_attempts import LoginAttemptLimiter
from blogauth.services.security import hash_password
from blogauth.services.sweeper import TokenSweeper

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _seed_admin() -> None:
    with SessionLocal() as db:
        existing = db.query(User).filter(User.username == settings.admin_username).first()
        if existing:
            return
        admin = User(
            username=settings.admin_username,
            email=settings.admin_email,
            password_hash=hash_password(settings.admin_password),
            role=Role.ADMIN,
        )
        db.add(admin)
        db.commit()
        logger.info("Seeded administrator '%s'", settings.admin_username)


def _validation_message(exc: RequestValidationError) -> str:
    # Field names and reasons only; submitted values are never echoed back.
    parts = []
    for error in exc.errors():
        field = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return "Invalid request: " + "; ".join(parts)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Admin updates keep 422 for an unrecognised role reference.
        if request.url.path.startswith("/admin/"):
            code = status.HTTP_422_UNPROCESSABLE_ENTITY
        else:
            code = status.HTTP_400_BAD_REQUEST
        return JSONResponse(status_code=code, content={"message": _validation_message(exc)})

    @app.exception_handler(StoreUnavailable)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
        # Full detail was logged where the fault happened.
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "An unexpected error occurred"},
        )


def create_app(limiter: LoginAttemptLimiter | None = None) -> FastAPI:
    app = FastAPI(title=settings.project_name)
    app.include_router(api_router)
    _register_exception_handlers(app)

    limiter = limiter or LoginAttemptLimiter(
        max_attempts=settings.max_failed_login_attempts,
        lockout=settings.lockout_duration(),
    )
    app.state.auth_service = AuthService(limiter)
    sweeper = TokenSweeper()

    @app.on_event("startup")
    async def startup() -> None:  # pragma: no cover - wiring
        Base.metadata.create_all(bind=engine)
        if settings.seed_admin:
            _seed_admin()
        sweeper.start(settings.token_cleanup_interval_seconds, limiter)

    @app.on_event("shutdown")
    async def shutdown() -> None:  # pragma: no cover - wiring
        await sweeper.stop()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("blogauth.main:app", host="0.0.0.0", port=8000, reload=True)
