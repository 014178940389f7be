"""HTTP surface receiving platform events for the charge functions.

Run with `uvicorn chargefn.services.functions.main:create_app --factory`.
Settings and clients are built here once per process and handed to the
handler service; nothing is created at import time.
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request

from chargefn.common.config import FunctionsSettings
from chargefn.common.error_reporting import ErrorReporter
from chargefn.common.events import ChargeWrittenEvent, PlatformEvent, UserCreatedEvent, UserDeletedEvent
from chargefn.common.gateway import PaymentGateway
from chargefn.common.logging import configure_logging, event_id_ctx, function_ctx, logger, user_id_ctx
from chargefn.common.metrics import function_duration_seconds, function_invocations_total, metrics_response
from chargefn.common.startup import log_startup_config
from chargefn.common.store import ChargeRecordStore, CustomerDirectory, RealtimeDatabase
from chargefn.common.tracing import instrument_app, setup_tracing
from chargefn.services.functions.service import ChargeFunctionsService


def build_service(settings: FunctionsSettings, client: httpx.AsyncClient) -> ChargeFunctionsService:
    """Construct every collaborator from one settings object."""

    db = RealtimeDatabase(client, settings.firebase_database_url, settings.firebase_auth_token)
    reporter = ErrorReporter(
        client,
        project_id=settings.gcp_project_id,
        function_name=settings.function_name,
        api_url=settings.logging_api_url,
        access_token=settings.logging_access_token,
        metadata_url=settings.metadata_url,
    )
    return ChargeFunctionsService(
        directory=CustomerDirectory(db),
        charges=ChargeRecordStore(db),
        gateway=PaymentGateway(settings.stripe_token, stripe_version=settings.stripe_api_version),
        reporter=reporter,
        currency=settings.currency,
        service_name=settings.service_name,
    )


async def _invoke(service_name: str, function: str, event: PlatformEvent, user_id: str, handler) -> None:
    """Run one handler with log context, metrics and failure mapping."""

    function_token = function_ctx.set(function)
    event_token = event_id_ctx.set(event.event_id)
    user_token = user_id_ctx.set(user_id)
    try:
        logger.info("event_received function=%s", function)
        with function_duration_seconds.labels(service=service_name, function=function).time():
            await handler(event)
    except Exception as exc:
        function_invocations_total.labels(service=service_name, function=function, outcome="failure").inc()
        logger.exception("function_failed function=%s error=%s", function, exc)
        raise HTTPException(status_code=500, detail=f"{function} failed") from exc
    else:
        function_invocations_total.labels(service=service_name, function=function, outcome="success").inc()
    finally:
        function_ctx.reset(function_token)
        event_id_ctx.reset(event_token)
        user_id_ctx.reset(user_token)


def create_app(
    settings: FunctionsSettings | None = None,
    service: ChargeFunctionsService | None = None,
) -> FastAPI:
    """Build the app; `service` overrides the collaborators built from settings."""

    settings = settings or FunctionsSettings()
    configure_logging(settings.service_name, settings.log_level)
    tracing_enabled = setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint)
    log_startup_config(
        settings,
        [
            "function_name",
            "currency",
            "firebase_database_url",
            "firebase_auth_token",
            "gcp_project_id",
            "stripe_token",
        ],
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the shared HTTP client for the process lifetime."""

        if service is not None:
            app.state.service = service
            yield
            return
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            app.state.service = build_service(settings, client)
            yield

    app = FastAPI(title="Charge Functions", lifespan=lifespan)
    if tracing_enabled:
        instrument_app(app)

    @app.post("/events/user.created")
    async def user_created(event: UserCreatedEvent, request: Request):
        """Provision a payment customer for a new account."""

        svc: ChargeFunctionsService = request.app.state.service
        await _invoke(settings.service_name, "createStripeCustomer", event, event.uid, svc.create_customer)
        return {"ok": True}

    @app.post("/events/user.deleted")
    async def user_deleted(event: UserDeletedEvent, request: Request):
        """Remove the payment customer of a deleted account."""

        svc: ChargeFunctionsService = request.app.state.service
        await _invoke(settings.service_name, "cleanupUser", event, event.uid, svc.cleanup_user)
        return {"ok": True}

    @app.post("/events/charge.written")
    async def charge_written(event: ChargeWrittenEvent, request: Request):
        """Charge a newly written request under `users/{uid}/charges/{id}`."""

        svc: ChargeFunctionsService = request.app.state.service
        await _invoke(settings.service_name, "createStripeCharge", event, event.user_id, svc.create_charge)
        return {"ok": True}

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True}

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    return app
