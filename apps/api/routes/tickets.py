from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from apps.api.dependencies.auth import CurrentActor
from apps.api.dependencies.tickets import TicketServiceDep, get_ticket_service
from apps.api.tickets.errors import (
    InvalidTicketTransitionError,
    TicketNotFoundError,
    TicketValidationError,
)
from apps.api.tickets.models import Ticket, TicketDetail, TicketDraft, TicketFilter, TimelineEntry
from apps.api.tickets.service import MISSING

router = APIRouter(prefix="/api", tags=["tickets"])

__all__ = ["router", "get_ticket_service"]


class TimelineEntryModel(BaseModel):
    id: int
    ticket_id: str
    action: str
    user: str
    created_at: str

    @classmethod
    def from_entity(cls, entity: TimelineEntry) -> "TimelineEntryModel":
        return cls(
            id=entity.id,
            ticket_id=entity.ticket_id,
            action=entity.action,
            user=entity.user,
            created_at=entity.created_at.isoformat(),
        )


class TicketModel(BaseModel):
    id: str
    title: str
    description: str
    customer: str | None = None
    pipeline: str
    status: str
    priority: str
    assigned_to: str | None = None
    created_at: str
    updated_at: str

    @classmethod
    def from_entity(cls, ticket: Ticket) -> "TicketModel":
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            customer=ticket.customer,
            pipeline=ticket.pipeline.value,
            status=ticket.status.value,
            priority=ticket.priority.value,
            assigned_to=ticket.assigned_to,
            created_at=ticket.created_at.isoformat(),
            updated_at=ticket.updated_at.isoformat(),
        )


class TicketDetailModel(TicketModel):
    timeline: list[TimelineEntryModel]

    @classmethod
    def from_detail(cls, detail: TicketDetail) -> "TicketDetailModel":
        base = TicketModel.from_entity(detail.ticket)
        return cls(
            **base.model_dump(),
            timeline=[TimelineEntryModel.from_entity(entry) for entry in detail.timeline],
        )


class TicketCreateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    customer: str | None = None
    pipeline: str | None = None
    priority: str | None = None
    assigned_to: str | None = None


class TicketUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str | None = None
    value: Any = None
    old_value: Any = Field(default=None, alias="oldValue")

    def raw_value(self) -> Any:
        return self.value if "value" in self.model_fields_set else MISSING


class TimelineEntryCreateRequest(BaseModel):
    action: str | None = None
    user: str | None = Field(default=None, max_length=255)


class MessageResponse(BaseModel):
    message: str


@router.get("/tickets", response_model=list[TicketModel], summary="List tickets")
async def list_tickets(
    service: TicketServiceDep,
    _: CurrentActor,
    pipeline: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None),
) -> list[TicketModel]:
    tickets = await service.list_tickets(TicketFilter(pipeline=pipeline, status=status_filter, search=search))
    return [TicketModel.from_entity(ticket) for ticket in tickets]


@router.get("/tickets/{ticket_id}", response_model=TicketDetailModel)
async def get_ticket(ticket_id: str, service: TicketServiceDep, _: CurrentActor) -> TicketDetailModel:
    try:
        detail = await service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TicketDetailModel.from_detail(detail)


@router.post("/tickets", response_model=TicketModel, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreateRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketModel:
    draft = TicketDraft(**payload.model_dump())
    try:
        ticket = await service.create_ticket(draft, actor=actor.display_name)
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TicketModel.from_entity(ticket)


@router.put("/tickets/{ticket_id}", response_model=TicketModel)
async def update_ticket(
    ticket_id: str,
    payload: TicketUpdateRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketModel:
    try:
        ticket = await service.update_ticket(
            ticket_id,
            field=payload.field,
            value=payload.raw_value(),
            old_value=payload.old_value,
            actor=actor.display_name,
        )
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTicketTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TicketModel.from_entity(ticket)


@router.delete("/tickets/{ticket_id}", response_model=MessageResponse)
async def delete_ticket(ticket_id: str, service: TicketServiceDep, _: CurrentActor) -> MessageResponse:
    try:
        await service.delete_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return MessageResponse(message="Ticket deleted successfully")


@router.post(
    "/tickets/{ticket_id}/timeline",
    response_model=TimelineEntryModel,
    status_code=status.HTTP_201_CREATED,
)
async def add_timeline_entry(
    ticket_id: str,
    payload: TimelineEntryCreateRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TimelineEntryModel:
    try:
        entry = await service.add_timeline_entry(
            ticket_id,
            action=payload.action,
            user=payload.user,
            actor=actor.display_name,
        )
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TimelineEntryModel.from_entity(entry)


@router.get("/stats", response_model=dict[str, int], summary="Active tickets per pipeline")
async def get_stats(service: TicketServiceDep, _: CurrentActor) -> dict[str, int]:
    stats = await service.get_stats()
    return stats.as_dict()
