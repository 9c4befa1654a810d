"""FastAPI view host over the session and resource stores."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from quickqr_client.api.schemas import LoginBody, QRCreateBody, RegisterBody
from quickqr_client.app_logging import configure_logging
from quickqr_client.containers import AppContainer
from quickqr_client.domain.models import SessionSnapshot, UserRecord
from quickqr_client.domain.outcomes import Failure, FailureKind
from quickqr_client.domain.qr import ALL_TYPES, QRRecord
from quickqr_client.services.guards import GuardAction, GuestGuard, ProtectedGuard
from quickqr_client.services.requests import prepare_qr_request, validate_registration
from quickqr_client.services.resources import ResourceStore

_FAILURE_STATUS = {
    FailureKind.NETWORK_ERROR: 502,
    FailureKind.AUTH_REJECTED: 401,
    FailureKind.VALIDATION_ERROR: 422,
    FailureKind.CONFLICT: 409,
    FailureKind.USERNAME_TAKEN: 409,
    FailureKind.EMAIL_TAKEN: 409,
    FailureKind.NOT_FOUND: 404,
    FailureKind.OPERATION_IN_PROGRESS: 429,
    FailureKind.INTERNAL_ERROR: 500,
}

RECENT_LIMIT = 6
TODAY_FILTER = "today"


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        snapshot = await app.state.container.session_store.restore()
        logger.info("View host started: session=%s", snapshot.status.value)
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def session(request: Request) -> dict[str, object]:
        """Current session status and user; the credential is never exposed."""
        return _session_json(_container(request).session_store.snapshot)

    @app.post("/auth/login", response_model=None)
    async def login(body: LoginBody, request: Request) -> Response | dict[str, object]:
        """Sign in an anonymous session."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.guest_guard, state_container)
        if blocked is not None:
            return blocked
        outcome = await state_container.session_store.login(body.email, body.password)
        if outcome.failure is not None:
            return _failure_response(outcome.failure)
        return {"user": _user_json(outcome.value)}

    @app.post("/auth/register", response_model=None)
    async def register(
        body: RegisterBody, request: Request
    ) -> Response | dict[str, object]:
        """Create an account after the form pre-check."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.guest_guard, state_container)
        if blocked is not None:
            return blocked
        invalid = validate_registration(
            body.username, body.email, body.password, body.confirm_password
        )
        if invalid is not None:
            return _failure_response(invalid)
        outcome = await state_container.session_store.register(
            body.username, body.email, body.password
        )
        if outcome.failure is not None:
            return _failure_response(outcome.failure)
        return {"user": _user_json(outcome.value)}

    @app.post("/auth/logout")
    async def logout(request: Request) -> dict[str, object]:
        """End the session locally."""
        return _session_json(_container(request).session_store.logout())

    @app.get("/dashboard", response_model=None)
    async def dashboard(request: Request) -> Response | dict[str, object]:
        """Welcome data, counts and the most recent records."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.protected_guard, state_container)
        if blocked is not None:
            return blocked
        store = state_container.resource_store
        counts = store.derived_counts()
        return {
            "user": _user_json(state_container.session_store.user),
            "counts": {
                "total": counts.total,
                "today": counts.today,
                "types": counts.types,
            },
            "recent": [
                _record_json(record) for record in store.records[:RECENT_LIMIT]
            ],
            **_load_state_json(store),
        }

    @app.get("/history", response_model=None)
    async def history(
        request: Request, tag: str = Query(ALL_TYPES, alias="type")
    ) -> Response | dict[str, object]:
        """The full history, filtered by type tag."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.protected_guard, state_container)
        if blocked is not None:
            return blocked
        store = state_container.resource_store
        return _history_json(store, tag, store.filtered_view(tag))

    @app.get("/history/today", response_model=None)
    async def history_today(request: Request) -> Response | dict[str, object]:
        """Records created on the current local date."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.protected_guard, state_container)
        if blocked is not None:
            return blocked
        store = state_container.resource_store
        return _history_json(store, TODAY_FILTER, store.today_view())

    @app.post("/history/refresh", response_model=None)
    async def refresh_history(request: Request) -> Response | dict[str, object]:
        """Reload the history from the backend."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.protected_guard, state_container)
        if blocked is not None:
            return blocked
        store = state_container.resource_store
        outcome = await store.load()
        if outcome.failure is not None:
            return _failure_response(outcome.failure)
        return _history_json(store, ALL_TYPES, store.filtered_view(ALL_TYPES))

    @app.post("/qr", response_model=None)
    async def create_qr(
        body: QRCreateBody, request: Request
    ) -> Response | dict[str, object]:
        """Generate a QR code for a URL."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.protected_guard, state_container)
        if blocked is not None:
            return blocked
        prepared = prepare_qr_request(body.url, body.name)
        if isinstance(prepared, Failure):
            return _failure_response(prepared)
        outcome = await state_container.resource_store.create(prepared)
        if outcome.failure is not None:
            return _failure_response(outcome.failure)
        return JSONResponse(_record_json(outcome.value), status_code=201)

    @app.delete("/qr/{qr_id}", response_model=None)
    async def delete_qr(qr_id: str, request: Request) -> Response:
        """Delete a QR code once the backend confirms it."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.protected_guard, state_container)
        if blocked is not None:
            return blocked
        outcome = await state_container.resource_store.delete(qr_id)
        if outcome.failure is not None:
            return _failure_response(outcome.failure)
        return Response(status_code=204)

    @app.get("/qr/{qr_id}/image", response_model=None)
    async def download_qr_image(qr_id: str, request: Request) -> Response:
        """Download the rendered QR image."""
        state_container = _container(request)
        blocked = _apply_guard(state_container.protected_guard, state_container)
        if blocked is not None:
            return blocked
        outcome = await state_container.resource_store.download_image(qr_id)
        if outcome.failure is not None:
            return _failure_response(outcome.failure)
        filename, content = outcome.value
        return Response(
            content=content,
            media_type="image/png",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return app


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _apply_guard(
    guard: ProtectedGuard | GuestGuard, container: AppContainer
) -> Response | None:
    """Return the response replacing the view, or ``None`` to render it."""
    decision = guard.evaluate(container.session_store.snapshot)
    if decision.action is GuardAction.RENDER:
        return None
    if decision.action is GuardAction.LOADING:
        return JSONResponse({"status": "loading"}, status_code=202)
    return RedirectResponse(decision.location or "/", status_code=303)


def _failure_response(failure: Failure) -> JSONResponse:
    status_code = _FAILURE_STATUS.get(failure.cause or failure.kind, 500)
    return JSONResponse(_failure_json(failure), status_code=status_code)


def _failure_json(failure: Failure) -> dict[str, object]:
    return {
        "error": failure.kind.value,
        "cause": failure.cause.value if failure.cause else None,
        "message": failure.message,
    }


def _session_json(snapshot: SessionSnapshot) -> dict[str, object]:
    return {"status": snapshot.status.value, "user": _user_json(snapshot.user)}


def _user_json(user: UserRecord | None) -> dict[str, str] | None:
    if user is None:
        return None
    return {"id": user.id, "username": user.username, "email": user.email}


def _record_json(record: QRRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "name": record.name,
        "url": record.url,
        "imageUrl": record.image_url,
        "type": record.type,
        "createdAt": record.created_at.isoformat(),
        "createdAtInferred": record.created_at_inferred,
        "scans": record.scans,
    }


def _load_state_json(store: ResourceStore) -> dict[str, object]:
    return {
        "loading": store.loading,
        "error": _failure_json(store.error) if store.error else None,
    }


def _history_json(
    store: ResourceStore, label: str, records: list[QRRecord]
) -> dict[str, object]:
    return {
        "filter": label,
        "types": store.available_types(),
        "records": [_record_json(record) for record in records],
        **_load_state_json(store),
    }
