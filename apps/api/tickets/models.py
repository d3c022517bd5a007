from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping, Sequence


class Pipeline(str, Enum):
    """Business workflows a ticket can belong to."""

    MARKETING = "marketing"
    SALES = "sales"
    ORDERS = "orders"
    SUPPORT = "support"


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    NEW = "new"
    IN_PROGRESS = "in-progress"
    PENDING = "pending"
    COMPLETED = "completed"


class TicketPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TicketField(str, Enum):
    """Ticket attributes that may be changed after creation."""

    PIPELINE = "pipeline"
    STATUS = "status"
    PRIORITY = "priority"
    ASSIGNED_TO = "assigned_to"
    TITLE = "title"
    DESCRIPTION = "description"
    CUSTOMER = "customer"

    @property
    def label(self) -> str:
        return FIELD_LABELS[self]


FIELD_LABELS: Mapping[TicketField, str] = {
    TicketField.PIPELINE: "Pipeline",
    TicketField.STATUS: "Status",
    TicketField.PRIORITY: "Priority",
    TicketField.ASSIGNED_TO: "Assigned To",
    TicketField.TITLE: "Title",
    TicketField.DESCRIPTION: "Description",
    TicketField.CUSTOMER: "Customer",
}

# Fields whose value must be a member of the given enum.
ENUM_FIELDS: Mapping[TicketField, type[Enum]] = {
    TicketField.PIPELINE: Pipeline,
    TicketField.STATUS: TicketStatus,
    TicketField.PRIORITY: TicketPriority,
}

# Fields that may never be blank.
REQUIRED_FIELDS: frozenset[TicketField] = frozenset(
    {TicketField.PIPELINE, TicketField.STATUS, TicketField.PRIORITY, TicketField.TITLE, TicketField.DESCRIPTION}
)


@dataclass(slots=True)
class Ticket:
    """A unit of work flowing through one pipeline."""

    id: str
    title: str
    description: str
    customer: str | None
    pipeline: Pipeline
    status: TicketStatus
    priority: TicketPriority
    assigned_to: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True, frozen=True)
class TimelineEntry:
    """Immutable record describing one change to a ticket."""

    id: int
    ticket_id: str
    action: str
    user: str
    created_at: datetime


@dataclass(slots=True)
class TicketDetail:
    """Container bundling the ticket with its ordered timeline."""

    ticket: Ticket
    timeline: Sequence[TimelineEntry]


@dataclass(slots=True)
class TicketDraft:
    """Caller supplied values for a ticket that does not exist yet."""

    title: str | None = None
    description: str | None = None
    pipeline: str | None = None
    priority: str | None = None
    customer: str | None = None
    assigned_to: str | None = None


@dataclass(slots=True, frozen=True)
class FieldUpdate:
    """A single field change, tagged by the field it targets."""

    field: TicketField
    value: str | None
    old_value: str | None = None

    def describe(self) -> str:
        if self.old_value:
            return f'{self.field.label} changed from "{self.old_value}" to "{_render(self.value)}"'
        return f'{self.field.label} updated to "{_render(self.value)}"'


@dataclass(slots=True)
class TicketFilter:
    """Listing options; ``None`` or ``"all"`` disables a filter."""

    pipeline: str | None = None
    status: str | None = None
    search: str | None = None

    @property
    def pipeline_value(self) -> str | None:
        return _filter_value(self.pipeline)

    @property
    def status_value(self) -> str | None:
        return _filter_value(self.status)

    @property
    def search_value(self) -> str | None:
        return self.search or None


@dataclass(slots=True)
class TicketStats:
    """Active ticket counts per pipeline plus the overall ticket total."""

    active: Mapping[Pipeline, int] = field(default_factory=dict)
    total: int = 0

    def count(self, pipeline: Pipeline) -> int:
        return self.active.get(pipeline, 0)

    def as_dict(self) -> dict[str, int]:
        payload = {pipeline.value: self.count(pipeline) for pipeline in Pipeline}
        payload["total"] = self.total
        return payload


def _render(value: str | None) -> str:
    return "" if value is None else str(value)


def _filter_value(value: str | None) -> str | None:
    if not value or value == "all":
        return None
    return value
