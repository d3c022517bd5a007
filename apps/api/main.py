import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from apps.api.core.config import get_settings
from apps.api.core.logging import configure_logging, init_tracer, shutdown_tracer
from apps.api.routes import health, tickets, users
from apps.api.services.database import create_engine, create_session_factory, ensure_schema
from apps.api.tickets.errors import TicketStorageError
from apps.api.tickets.seed import seed_sample_tickets
from apps.api.tickets.service import TicketService
from apps.api.tickets.state import TicketStateMachine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    app.state.logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.tracer_provider = tracer_provider

    db_engine = create_engine(settings.database_url, echo=settings.database_echo)
    session_factory = create_session_factory(db_engine)
    try:
        await ensure_schema(db_engine)
        if settings.seed_sample_data:
            await seed_sample_tickets(session_factory)
        app.state.ticket_service = TicketService(
            session_factory,
            state_machine=TicketStateMachine.for_workflow(settings.status_workflow),
            id_retries=settings.ticket_id_retries,
        )
        app.state.db_engine = db_engine
        logger.info("Ticket service ready on %s", db_engine.url.render_as_string(hide_password=True))
        yield
    finally:
        app.state.ticket_service = None
        app.state.db_engine = None
        await db_engine.dispose()
        shutdown_tracer(tracer_provider)


async def storage_error_handler(request: Request, exc: TicketStorageError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Ticket store failure"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_exception_handler(TicketStorageError, storage_error_handler)
    app.include_router(health.router)
    app.include_router(tickets.router)
    app.include_router(users.router)
    return app


app = create_app()
