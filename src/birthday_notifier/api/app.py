"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from birthday_notifier.api.auth import require_session, require_telegram_secret
from birthday_notifier.api.schemas import (
    LoginRequest,
    RegisterRequest,
    SessionResponse,
    SubscribeRequest,
    UserResponse,
)
from birthday_notifier.api.telegram_models import TelegramUpdate
from birthday_notifier.app_logging import configure_logging
from birthday_notifier.containers import AppContainer
from birthday_notifier.domain.errors import (
    BadPasswordError,
    PermissionDeniedError,
    StoreUnavailableError,
    UnauthenticatedError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationFailedError,
)
from birthday_notifier.domain.sessions import SessionRecord
from birthday_notifier.telegram_commands import telegram_commands

_UNPROCESSABLE_ENTITY = 422


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        telegram_client = app.state.container.telegram_client
        try:
            await telegram_client.set_my_commands(telegram_commands())
            settings = app.state.container.settings
            if settings.telegram_webhook_url:
                await telegram_client.set_webhook(
                    settings.telegram_webhook_url,
                    secret_token=settings.telegram_webhook_secret,
                )
        except Exception:
            logger.exception("Failed to sync Telegram bot settings")
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    _register_error_handlers(app, logger)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/login")
    async def login(body: LoginRequest, request: Request) -> SessionResponse:
        """Authenticate and open a session."""
        state_container: AppContainer = request.app.state.container
        try:
            token = await state_container.auth_service.login(
                body.username, body.password, _user_agent(request)
            )
        except UserNotFoundError:
            return _message(status.HTTP_401_UNAUTHORIZED, "user not found")
        return SessionResponse(session=token)

    @app.post("/register")
    async def register(body: RegisterRequest, request: Request) -> SessionResponse:
        """Create a user and open a session."""
        state_container: AppContainer = request.app.state.container
        token = await state_container.auth_service.register(
            body.to_registration(), _user_agent(request)
        )
        return SessionResponse(session=token)

    @app.post("/logout")
    async def logout(
        request: Request, session: SessionRecord = Depends(require_session)
    ) -> Response:
        """Invalidate the current session."""
        state_container: AppContainer = request.app.state.container
        await state_container.auth_service.logout(session.token)
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/users")
    async def list_users(
        request: Request, _session: SessionRecord = Depends(require_session)
    ) -> list[UserResponse]:
        """Return every registered user."""
        state_container: AppContainer = request.app.state.container
        users = await state_container.user_service.list_users()
        return [UserResponse.from_record(user) for user in users]

    @app.get("/users/{user_id}/subscribers")
    async def list_subscribers(
        user_id: int,
        request: Request,
        _session: SessionRecord = Depends(require_session),
    ) -> list[UserResponse]:
        """Return the subscribers of a user."""
        state_container: AppContainer = request.app.state.container
        users = await state_container.user_service.list_subscribers(user_id)
        return [UserResponse.from_record(user) for user in users]

    @app.post("/subscribe")
    async def subscribe(
        body: SubscribeRequest,
        request: Request,
        session: SessionRecord = Depends(require_session),
    ) -> Response:
        """Subscribe the session owner to a user's birthday."""
        state_container: AppContainer = request.app.state.container
        await state_container.user_service.subscribe(
            body.user_id, _acting_subscriber(body, session)
        )
        return Response(status_code=status.HTTP_200_OK)

    @app.post("/unsubscribe")
    async def unsubscribe(
        body: SubscribeRequest,
        request: Request,
        session: SessionRecord = Depends(require_session),
    ) -> Response:
        """Remove the session owner's subscription to a user."""
        state_container: AppContainer = request.app.state.container
        await state_container.user_service.unsubscribe(
            body.user_id, _acting_subscriber(body, session)
        )
        return Response(status_code=status.HTTP_200_OK)

    @app.post("/telegram/webhook", dependencies=[Depends(require_telegram_secret)])
    async def telegram_webhook(
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        await state_container.command_dispatcher.dispatch(update)
        return {"status": "ok"}

    return app


def _register_error_handlers(app: FastAPI, logger: logging.Logger) -> None:
    """Translate domain errors into client-facing responses."""

    @app.exception_handler(RequestValidationError)
    async def request_validation_failed(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "location": str(error["loc"][0]) if error["loc"] else "body",
                "param": str(error["loc"][-1]).lower() if error["loc"] else "",
                "msg": "is required" if error["type"] == "missing" else error["msg"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=_UNPROCESSABLE_ENTITY,
            content={"errors": errors},
        )

    @app.exception_handler(ValidationFailedError)
    async def validation_failed(
        _request: Request, exc: ValidationFailedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=_UNPROCESSABLE_ENTITY,
            content={"errors": [error.as_dict() for error in exc.errors]},
        )

    @app.exception_handler(UnauthenticatedError)
    async def unauthenticated(
        _request: Request, exc: UnauthenticatedError
    ) -> JSONResponse:
        response = _message(status.HTTP_401_UNAUTHORIZED, str(exc))
        response.headers["WWW-Authenticate"] = "Bearer"
        return response

    @app.exception_handler(BadPasswordError)
    async def bad_password(_request: Request, exc: BadPasswordError) -> JSONResponse:
        return _message(status.HTTP_401_UNAUTHORIZED, str(exc))

    @app.exception_handler(PermissionDeniedError)
    async def permission_denied(
        _request: Request, exc: PermissionDeniedError
    ) -> JSONResponse:
        return _message(status.HTTP_403_FORBIDDEN, str(exc))

    @app.exception_handler(UserNotFoundError)
    async def not_found(_request: Request, exc: UserNotFoundError) -> JSONResponse:
        return _message(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(UserAlreadyExistsError)
    async def conflict(_request: Request, exc: UserAlreadyExistsError) -> JSONResponse:
        return _message(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable(
        request: Request, exc: StoreUnavailableError
    ) -> JSONResponse:
        logger.error(
            "Store unavailable: %s", exc, extra={"path": request.url.path}
        )
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal error")


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _user_agent(request: Request) -> str:
    return request.headers.get("user-agent", "")


def _acting_subscriber(body: SubscribeRequest, session: SessionRecord) -> int:
    """Return the subscriber id, which must be the session owner."""
    if body.subscriber_id is not None and body.subscriber_id != session.user_id:
        raise PermissionDeniedError("you can only manage your own subscriptions")
    return session.user_id
