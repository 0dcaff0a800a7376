"""
Domain Models for the Parking Engine

This module contains:
1. Value Objects: LicensePlate, TimeRange
2. Enums: vehicle classes, spot categories, ticket/payment statuses and the
   facility policies
3. Entities: Spot, Vehicle, Ticket, Payment, Entrance, Exit, DisplayBoard
4. Domain Events raised by the aggregates

Cross-aggregate references are identifiers, never object pointers: a spot
knows the license plate parked on it, a vehicle knows its active ticket
number, a ticket knows its spot, entrance and exit ids.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, FrozenSet, Iterable
from datetime import datetime
from decimal import Decimal
import re
import uuid
from enum import Enum

from .exceptions import InvalidTransitionError


MAX_PLATE_LENGTH = 20


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class LicensePlate:
    """
    Value Object: License plate number with validation
    Identifies a vehicle while it holds an active ticket
    """
    value: str

    def __post_init__(self):
        if not self.value:
            raise ValueError("License plate cannot be empty")

        object.__setattr__(self, 'value', self.value.strip().upper())

        if len(self.value) < 2 or len(self.value) > MAX_PLATE_LENGTH:
            raise ValueError(
                f"License plate must be 2-{MAX_PLATE_LENGTH} characters, got: {self.value}"
            )

        if not re.match(r'^[A-Z0-9\s\-]+$', self.value):
            raise ValueError(
                f"License plate can only contain letters, numbers, spaces, and hyphens: {self.value}"
            )

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TimeRange:
    """
    Value Object: Time range with start and end times
    A zero-length range is allowed (payment at the moment of entry)
    """
    start_time: datetime
    end_time: datetime

    def __post_init__(self):
        if self.end_time < self.start_time:
            raise ValueError("End time cannot be before start time")

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    @property
    def duration_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleClass(Enum):
    """Vehicle classes the entrance panels recognise"""
    CAR = "car"
    VAN = "van"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"

    def __str__(self) -> str:
        return self.value.title()


class SpotCategory(Enum):
    """
    Enumeration of spot categories
    A spot's category is fixed at configuration time
    """
    COMPACT = "compact"
    LARGE = "large"
    HANDICAPPED = "handicapped"
    MOTORCYCLE = "motorcycle"
    ELECTRIC = "electric"

    @property
    def is_metered(self) -> bool:
        """Electric spots carry a charging panel"""
        return self is SpotCategory.ELECTRIC

    def __str__(self) -> str:
        return self.value.title()


class TicketStatus(Enum):
    """
    Ticket lifecycle states

    ISSUED -> IN_USE -> PAID -> VALIDATED, with administrative exits to
    CANCELED / REFUNDED. VALIDATED, CANCELED and REFUNDED are terminal.
    """
    ISSUED = "issued"
    IN_USE = "in_use"
    PAID = "paid"
    VALIDATED = "validated"
    CANCELED = "canceled"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        """Non-terminal tickets keep their spot occupied"""
        return not self.is_terminal


TERMINAL_STATUSES: FrozenSet[TicketStatus] = frozenset({
    TicketStatus.VALIDATED,
    TicketStatus.CANCELED,
    TicketStatus.REFUNDED,
})

# ISSUED -> CANCELED is only reachable when tickets are held at ISSUED
# (deferred activation); with immediate activation ISSUED is never observed.
ALLOWED_TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
    TicketStatus.ISSUED: frozenset({TicketStatus.IN_USE, TicketStatus.CANCELED}),
    TicketStatus.IN_USE: frozenset({TicketStatus.PAID, TicketStatus.CANCELED, TicketStatus.REFUNDED}),
    TicketStatus.PAID: frozenset({TicketStatus.VALIDATED, TicketStatus.CANCELED, TicketStatus.REFUNDED}),
    TicketStatus.VALIDATED: frozenset(),
    TicketStatus.CANCELED: frozenset(),
    TicketStatus.REFUNDED: frozenset(),
}


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    """Payment methods accepted at exit panels and pay stations"""
    CASH = "cash"
    CREDIT_CARD = "credit_card"

    @classmethod
    def parse(cls, value: Any) -> 'PaymentMethod':
        """Accept an enum member or a loose string such as 'card' or 'Cash'"""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace('-', '_').replace(' ', '_')
        aliases = {"card": "credit_card", "creditcard": "credit_card"}
        try:
            return cls(aliases.get(normalized, normalized))
        except ValueError:
            raise ValueError(f"Invalid payment method: {value}")


class FullnessPolicy(Enum):
    """What ParkingFacility.is_full() means without a vehicle class"""
    PER_CLASS = "per_class"    # no vehicle class can be served
    ALL_SPOTS = "all_spots"    # every spot is occupied


class TicketActivation(Enum):
    """Whether a new ticket moves to IN_USE at issuance or waits at ISSUED"""
    IMMEDIATE = "immediate"
    DEFERRED = "deferred"


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Entity:
    """
    Base class for all domain entities
    Entities are equal when they share type and identifier
    """

    def __init__(self, id: Any):
        self._id = id

    @property
    def id(self) -> Any:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return False
        return self.id == other.id and type(self) == type(other)

    def __hash__(self) -> int:
        return hash((self.id, type(self).__name__))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


class ElectricPanel:
    """Charging meter attached to an electric spot"""

    def __init__(self):
        self.charging_started_at: Optional[datetime] = None

    @property
    def is_charging(self) -> bool:
        return self.charging_started_at is not None

    def start_charging(self, now: datetime) -> bool:
        if self.is_charging:
            return False
        self.charging_started_at = now
        return True

    def cancel_charging(self) -> bool:
        self.charging_started_at = None
        return True


class Spot(Entity):
    """
    Entity: A single physical parking space

    The occupancy flag is derived from the assigned license plate, so a spot
    is occupied exactly when a vehicle reference is present. Reassigning an
    occupied spot or freeing a free one reports failure instead of raising.
    """

    def __init__(self, id: int, category: SpotCategory, floor_name: str):
        if not isinstance(id, int) or isinstance(id, bool):
            raise ValueError(f"Spot id must be an integer, got: {id!r}")
        super().__init__(id)
        self._category = category
        self.floor_name = floor_name
        self._vehicle_license: Optional[str] = None
        self.panel: Optional[ElectricPanel] = ElectricPanel() if category.is_metered else None

    @property
    def category(self) -> SpotCategory:
        return self._category

    @property
    def vehicle_license(self) -> Optional[str]:
        return self._vehicle_license

    @property
    def occupied(self) -> bool:
        return self._vehicle_license is not None

    def assign_vehicle(self, license_plate: str) -> bool:
        if self._vehicle_license is not None:
            return False
        self._vehicle_license = license_plate
        return True

    def remove_vehicle(self) -> bool:
        if self._vehicle_license is None:
            return False
        self._vehicle_license = None
        if self.panel is not None:
            self.panel.cancel_charging()
        return True

    def to_dict(self) -> Dict[str, Any]:
        license_plate = self._vehicle_license
        return {
            "id": self.id,
            "category": self._category.value,
            "floor_name": self.floor_name,
            "occupied": license_plate is not None,
            "vehicle_license": license_plate,
        }

    def __str__(self) -> str:
        status = "Occupied" if self.occupied else "Free"
        return f"Spot {self.id} ({self._category}, floor {self.floor_name}) - {status}"


class Vehicle(Entity):
    """
    Entity: A vehicle presented at an entrance
    Identified by its license plate; holds at most one active ticket number
    """

    def __init__(self, license_plate: LicensePlate, vehicle_class: VehicleClass):
        super().__init__(license_plate.value)
        self.license_plate = license_plate
        self.vehicle_class = vehicle_class
        self.active_ticket_number: Optional[int] = None

    @property
    def has_active_ticket(self) -> bool:
        return self.active_ticket_number is not None

    def assign_ticket(self, ticket_number: int) -> None:
        self.active_ticket_number = ticket_number

    def clear_ticket(self) -> None:
        self.active_ticket_number = None

    def __str__(self) -> str:
        return f"{self.vehicle_class} [{self.license_plate}]"


@dataclass
class Payment:
    """A single payment attempt for a ticket"""
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    completed_at: Optional[datetime] = None
    payment_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def mark_completed(self, at: datetime) -> None:
        self.status = PaymentStatus.COMPLETED
        self.completed_at = at

    def mark_failed(self) -> None:
        self.status = PaymentStatus.FAILED

    def mark_refunded(self) -> None:
        self.status = PaymentStatus.REFUNDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "amount": str(self.amount),
            "method": self.method.value,
            "status": self.status.value,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class Ticket(Entity):
    """
    Entity: One vehicle's occupancy session from entry to validated exit

    Immutable after creation except for status, exit time, exit id, amount
    and payment. All status changes go through transition_to().
    """

    def __init__(
        self,
        ticket_number: int,
        license_plate: str,
        vehicle_class: VehicleClass,
        entrance_id: str,
        spot_id: int,
        entry_time: datetime
    ):
        super().__init__(ticket_number)
        self.license_plate = license_plate
        self.vehicle_class = vehicle_class
        self.entrance_id = entrance_id
        self.spot_id = spot_id
        self.entry_time = entry_time
        self.exit_time: Optional[datetime] = None
        self.exit_id: Optional[str] = None
        self.amount: Decimal = Decimal('0.00')
        self.payment: Optional[Payment] = None
        self._status = TicketStatus.ISSUED
        self.payment_in_progress = False

    @property
    def ticket_number(self) -> int:
        return self.id

    @property
    def status(self) -> TicketStatus:
        return self._status

    def can_transition_to(self, status: TicketStatus) -> bool:
        return status in ALLOWED_TRANSITIONS[self._status]

    def transition_to(self, status: TicketStatus) -> None:
        """Raises: InvalidTransitionError if the state machine forbids the move"""
        if not self.can_transition_to(status):
            raise InvalidTransitionError(self.ticket_number, self._status, status)
        self._status = status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket_number": self.ticket_number,
            "license_plate": self.license_plate,
            "vehicle_class": self.vehicle_class.value,
            "entrance_id": self.entrance_id,
            "spot_id": self.spot_id,
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat() if self.exit_time else None,
            "exit_id": self.exit_id,
            "amount": str(self.amount),
            "status": self._status.value,
            "payment": self.payment.to_dict() if self.payment else None,
        }

    def __str__(self) -> str:
        return f"Ticket {self.ticket_number} [{self.license_plate}] {self._status.value}"


@dataclass(frozen=True)
class Entrance:
    id: str


@dataclass(frozen=True)
class Exit:
    id: str


class DisplayBoard(Entity):
    """
    Entity: Free-spot counter for one floor
    Holds data only; turning free_counts into pixels is the renderer's job
    """

    def __init__(self, id: int, floor_name: str):
        super().__init__(id)
        self.floor_name = floor_name
        self.free_counts: Dict[SpotCategory, int] = {}
        self.refreshed_at: Optional[datetime] = None

    def refresh(self, spots: Iterable[Spot], at: Optional[datetime] = None) -> None:
        counts = {category: 0 for category in SpotCategory}
        for spot in spots:
            if not spot.occupied:
                counts[spot.category] += 1
        self.free_counts = {category: count for category, count in counts.items()}
        self.refreshed_at = at or datetime.now()


# ============================================================================
# DOMAIN EVENTS
# ============================================================================

class EventType(str, Enum):
    """Domain event types published on the event bus"""
    TICKET_ISSUED = "ticket.issued"
    TICKET_PAID = "ticket.paid"
    TICKET_CLOSED = "ticket.closed"
    SPOT_OCCUPIED = "spot.occupied"
    SPOT_RELEASED = "spot.released"


class DomainEvent(ABC):
    """
    Base class for all domain events
    Events represent something that happened in the domain
    """

    event_type: EventType

    def __init__(self):
        self.event_id = str(uuid.uuid4())
        self.timestamp = datetime.now()
        self.version = "1.0"

    @abstractmethod
    def data(self) -> Dict[str, Any]:
        """Event payload"""
        pass

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
            "data": self.data(),
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__} at {self.timestamp}"


class SpotOccupiedEvent(DomainEvent):
    event_type = EventType.SPOT_OCCUPIED

    def __init__(self, spot_id: int, floor_name: str, license_plate: str):
        super().__init__()
        self.spot_id = spot_id
        self.floor_name = floor_name
        self.license_plate = license_plate

    def data(self) -> Dict[str, Any]:
        return {
            "spot_id": self.spot_id,
            "floor_name": self.floor_name,
            "license_plate": self.license_plate,
        }


class SpotReleasedEvent(DomainEvent):
    event_type = EventType.SPOT_RELEASED

    def __init__(self, spot_id: int, floor_name: str, license_plate: str):
        super().__init__()
        self.spot_id = spot_id
        self.floor_name = floor_name
        self.license_plate = license_plate

    def data(self) -> Dict[str, Any]:
        return {
            "spot_id": self.spot_id,
            "floor_name": self.floor_name,
            "license_plate": self.license_plate,
        }


class TicketIssuedEvent(DomainEvent):
    event_type = EventType.TICKET_ISSUED

    def __init__(self, ticket: Ticket):
        super().__init__()
        self.ticket_number = ticket.ticket_number
        self.license_plate = ticket.license_plate
        self.spot_id = ticket.spot_id
        self.entrance_id = ticket.entrance_id
        self.status = ticket.status

    def data(self) -> Dict[str, Any]:
        return {
            "ticket_number": self.ticket_number,
            "license_plate": self.license_plate,
            "spot_id": self.spot_id,
            "entrance_id": self.entrance_id,
            "status": self.status.value,
        }


class TicketPaidEvent(DomainEvent):
    event_type = EventType.TICKET_PAID

    def __init__(self, ticket: Ticket):
        super().__init__()
        self.ticket_number = ticket.ticket_number
        self.amount = ticket.amount
        self.method = ticket.payment.method if ticket.payment else None

    def data(self) -> Dict[str, Any]:
        return {
            "ticket_number": self.ticket_number,
            "amount": str(self.amount),
            "method": self.method.value if self.method else None,
        }


class TicketClosedEvent(DomainEvent):
    """Raised when a ticket reaches a terminal status"""
    event_type = EventType.TICKET_CLOSED

    def __init__(self, ticket: Ticket):
        super().__init__()
        self.ticket_number = ticket.ticket_number
        self.license_plate = ticket.license_plate
        self.spot_id = ticket.spot_id
        self.status = ticket.status

    def data(self) -> Dict[str, Any]:
        return {
            "ticket_number": self.ticket_number,
            "license_plate": self.license_plate,
            "spot_id": self.spot_id,
            "status": self.status.value,
        }
