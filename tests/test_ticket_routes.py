from datetime import datetime, timezone

from fastapi.testclient import TestClient
from unittest.mock import AsyncMock
import pytest

from apps.api.core.config import get_settings
from apps.api.dependencies.auth import Actor, get_current_actor
from apps.api.main import create_app
from apps.api.routes import tickets as ticket_routes
from apps.api.tickets.errors import (
    InvalidTicketTransitionError,
    TicketNotFoundError,
    TicketStorageError,
    TicketValidationError,
)
from apps.api.tickets.models import (
    Pipeline,
    Ticket,
    TicketDetail,
    TicketFilter,
    TicketPriority,
    TicketStats,
    TicketStatus,
    TimelineEntry,
)
from apps.api.tickets.service import MISSING

AUTH = {"Authorization": "Bearer admin-token"}


def _make_ticket(*, ticket_id: str = "TKT-001", status: TicketStatus = TicketStatus.NEW) -> Ticket:
    now = datetime.now(timezone.utc)
    return Ticket(
        id=ticket_id,
        title="Quote Request",
        description="Custom tooling",
        customer="Acme Manufacturing Co.",
        pipeline=Pipeline.SALES,
        status=status,
        priority=TicketPriority.HIGH,
        assigned_to=None,
        created_at=now,
        updated_at=now,
    )


def _make_entry(ticket_id: str = "TKT-001", *, action: str = "Ticket created") -> TimelineEntry:
    return TimelineEntry(
        id=1,
        ticket_id=ticket_id,
        action=action,
        user="Mike Chen",
        created_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def ticket_client():
    app = create_app()
    service = AsyncMock()

    async def override_service():
        return service

    app.dependency_overrides[ticket_routes.get_ticket_service] = override_service
    app.dependency_overrides[get_current_actor] = lambda: Actor("sales-token", "Mike Chen")

    client = TestClient(app)
    try:
        yield client, service
    finally:
        app.dependency_overrides.clear()


def test_create_ticket_endpoint_returns_created(ticket_client):
    client, service = ticket_client
    ticket = _make_ticket()
    service.create_ticket = AsyncMock(return_value=ticket)

    response = client.post(
        "/api/tickets",
        json={"title": "Quote Request", "description": "Custom tooling", "pipeline": "sales", "priority": "high"},
    )

    assert response.status_code == 201
    assert response.json()["id"] == "TKT-001"
    assert service.create_ticket.await_args.kwargs["actor"] == "Mike Chen"


def test_create_ticket_endpoint_maps_validation_errors(ticket_client):
    client, service = ticket_client
    service.create_ticket = AsyncMock(side_effect=TicketValidationError("Missing required fields: title"))

    response = client.post("/api/tickets", json={"description": "Body"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields: title"


def test_list_tickets_endpoint_passes_filters(ticket_client):
    client, service = ticket_client
    service.list_tickets = AsyncMock(return_value=[_make_ticket(status=TicketStatus.PENDING)])

    response = client.get("/api/tickets", params={"pipeline": "sales", "status": "pending", "search": "quote"})

    assert response.status_code == 200
    body = response.json()
    assert len(body) == 1
    assert body[0]["status"] == "pending"
    service.list_tickets.assert_awaited_with(TicketFilter(pipeline="sales", status="pending", search="quote"))


def test_get_ticket_endpoint_includes_timeline(ticket_client):
    client, service = ticket_client
    ticket = _make_ticket()
    service.get_ticket = AsyncMock(return_value=TicketDetail(ticket=ticket, timeline=[_make_entry()]))

    response = client.get("/api/tickets/TKT-001")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "TKT-001"
    assert body["timeline"][0]["action"] == "Ticket created"


def test_get_ticket_endpoint_returns_not_found(ticket_client):
    client, service = ticket_client
    service.get_ticket = AsyncMock(side_effect=TicketNotFoundError("Ticket TKT-404 not found"))

    response = client.get("/api/tickets/TKT-404")

    assert response.status_code == 404


def test_update_ticket_endpoint_reads_old_value_alias(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(return_value=_make_ticket(status=TicketStatus.IN_PROGRESS))

    response = client.put(
        "/api/tickets/TKT-001",
        json={"field": "status", "value": "in-progress", "oldValue": "new"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "in-progress"
    service.update_ticket.assert_awaited_with(
        "TKT-001", field="status", value="in-progress", old_value="new", actor="Mike Chen"
    )


def test_update_ticket_endpoint_distinguishes_missing_value(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(side_effect=TicketValidationError("Missing field or value"))

    response = client.put("/api/tickets/TKT-001", json={"field": "title"})

    assert response.status_code == 400
    assert service.update_ticket.await_args.kwargs["value"] is MISSING


def test_update_ticket_endpoint_returns_conflict_on_invalid_transition(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(side_effect=InvalidTicketTransitionError("nope"))

    response = client.put("/api/tickets/TKT-001", json={"field": "status", "value": "new"})

    assert response.status_code == 409


def test_delete_ticket_endpoint_confirms(ticket_client):
    client, service = ticket_client
    service.delete_ticket = AsyncMock(return_value=None)

    response = client.delete("/api/tickets/TKT-001")

    assert response.status_code == 200
    assert response.json() == {"message": "Ticket deleted successfully"}


def test_add_timeline_entry_endpoint_returns_entry(ticket_client):
    client, service = ticket_client
    service.add_timeline_entry = AsyncMock(return_value=_make_entry(action="Called customer"))

    response = client.post("/api/tickets/TKT-001/timeline", json={"action": "Called customer"})

    assert response.status_code == 201
    assert response.json()["action"] == "Called customer"
    service.add_timeline_entry.assert_awaited_with(
        "TKT-001", action="Called customer", user=None, actor="Mike Chen"
    )


def test_stats_endpoint_returns_every_pipeline(ticket_client):
    client, service = ticket_client
    service.get_stats = AsyncMock(return_value=TicketStats(active={Pipeline.SALES: 2}, total=3))

    response = client.get("/api/stats")

    assert response.status_code == 200
    assert response.json() == {"marketing": 0, "sales": 2, "orders": 0, "support": 0, "total": 3}


def test_storage_failures_become_server_errors(ticket_client):
    client, service = ticket_client
    service.get_stats = AsyncMock(side_effect=TicketStorageError("disk full"))

    response = client.get("/api/stats")

    assert response.status_code == 500
    assert response.json() == {"detail": "Ticket store failure"}


def test_ticket_routes_require_a_bearer_token():
    app = create_app()
    service = AsyncMock()
    service.list_tickets = AsyncMock(return_value=[])

    async def override_service():
        return service

    app.dependency_overrides[ticket_routes.get_ticket_service] = override_service
    client = TestClient(app)

    assert client.get("/api/tickets").status_code == 401
    assert client.get("/api/tickets", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/api/tickets", headers={"Authorization": "Bearer sales-token"}).status_code == 200
    service.list_tickets.assert_awaited_once()


@pytest.fixture
def live_client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("SEED_SAMPLE_DATA", "false")
    get_settings.cache_clear()
    try:
        with TestClient(create_app()) as client:
            yield client
    finally:
        get_settings.cache_clear()


def test_ticket_lifecycle_over_http(live_client):
    created = live_client.post(
        "/api/tickets",
        headers=AUTH,
        json={"title": "T", "description": "D", "pipeline": "marketing", "priority": "high"},
    )
    assert created.status_code == 201
    ticket_id = created.json()["id"]
    assert ticket_id == "TKT-001"
    assert created.json()["status"] == "new"

    updated = live_client.put(
        f"/api/tickets/{ticket_id}",
        headers=AUTH,
        json={"field": "status", "value": "in-progress", "oldValue": "new"},
    )
    assert updated.status_code == 200

    detail = live_client.get(f"/api/tickets/{ticket_id}", headers=AUTH).json()
    assert [entry["action"] for entry in detail["timeline"]] == [
        "Ticket created",
        'Status changed from "new" to "in-progress"',
    ]
    assert {entry["user"] for entry in detail["timeline"]} == {"Administrator"}

    rejected = live_client.put(f"/api/tickets/{ticket_id}", headers=AUTH, json={"field": "id", "value": "x"})
    assert rejected.status_code == 400

    stats = live_client.get("/api/stats", headers=AUTH).json()
    assert stats == {"marketing": 1, "sales": 0, "orders": 0, "support": 0, "total": 1}

    assert live_client.delete(f"/api/tickets/{ticket_id}", headers=AUTH).status_code == 200
    assert live_client.get(f"/api/tickets/{ticket_id}", headers=AUTH).status_code == 404
    assert live_client.delete(f"/api/tickets/{ticket_id}", headers=AUTH).status_code == 404


def test_health_reports_database(live_client):
    response = live_client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["database"] == "ok"
