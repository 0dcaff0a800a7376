"""
Aggregate Roots for the Parking Engine

Aggregates:
1. SpotRegistry - Root aggregate owning floors and spots
2. TicketLedger - Root aggregate owning tickets and the vehicle registry

Key Concepts:
- All spot and ticket mutations go through aggregate root methods
- Domain events are collected on the root and drained by the caller
- Aggregates do not lock; the facility coordinator serializes mutations
"""

from typing import List, Optional, Dict, Iterator, Callable, Union, Any, TYPE_CHECKING
from datetime import datetime
import logging

from .exceptions import (
    ConfigurationError, LotFullError, AlreadyParkedError,
    UnknownTicketError, InvalidTicketStateError
)
from .models import (
    Entity, Spot, Vehicle, Ticket, Payment, DisplayBoard,
    SpotCategory, TicketStatus, TicketActivation, TERMINAL_STATUSES,
    DomainEvent, SpotOccupiedEvent, SpotReleasedEvent,
    TicketIssuedEvent, TicketPaidEvent, TicketClosedEvent
)

if TYPE_CHECKING:
    from .strategies import SpotMatcher


CategoryPredicate = Union[SpotCategory, Callable[[SpotCategory], bool]]


# ============================================================================
# BASE AGGREGATE ROOT
# ============================================================================

class AggregateRoot(Entity):
    """
    Base class for all aggregate roots
    Provides domain event collection and versioning
    """

    def __init__(self, id: Any):
        super().__init__(id)
        self._version: int = 1
        self._changes: List[DomainEvent] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def version(self) -> int:
        return self._version

    def _increment_version(self) -> None:
        self._version += 1

    def _add_domain_event(self, event: DomainEvent) -> None:
        self._changes.append(event)
        self._logger.debug(f"Added domain event: {event.__class__.__name__}")

    def clear_events(self) -> List[DomainEvent]:
        """Clear and return all domain events"""
        events = self._changes.copy()
        self._changes.clear()
        return events

    @property
    def has_changes(self) -> bool:
        return len(self._changes) > 0


# ============================================================================
# FLOORS AND SPOTS
# ============================================================================

class ParkingFloor(Entity):
    """
    Entity: One named floor of the facility
    Keeps its spots in ascending id order and owns its display boards
    """

    def __init__(self, name: str):
        if not name or not name.strip():
            raise ConfigurationError("Floor name cannot be empty")
        super().__init__(name)
        self._spots: List[Spot] = []
        self._boards: List[DisplayBoard] = []

    @property
    def name(self) -> str:
        return self.id

    @property
    def display_boards(self) -> List[DisplayBoard]:
        return list(self._boards)

    def _add_spot(self, spot: Spot) -> None:
        self._spots.append(spot)
        self._spots.sort(key=lambda s: s.id)

    def _add_display_board(self, board: DisplayBoard) -> None:
        self._boards.append(board)
        board.refresh(self._spots)

    def all_spots(self) -> List[Spot]:
        return list(self._spots)

    def free_spots(self, category: Optional[SpotCategory] = None) -> List[Spot]:
        return [
            spot for spot in self._spots
            if not spot.occupied and (category is None or spot.category == category)
        ]

    def free_counts(self) -> Dict[SpotCategory, int]:
        counts = {category: 0 for category in SpotCategory}
        for spot in self._spots:
            if not spot.occupied:
                counts[spot.category] += 1
        return counts

    def __str__(self) -> str:
        return f"Floor {self.name} ({len(self.free_spots())}/{len(self._spots)} free)"


class SpotRegistry(AggregateRoot):
    """
    Aggregate Root: Every spot of the facility, grouped by floor

    reserve() and release() report conflicts by returning False; they never
    raise for an occupied/free mismatch and never change state on failure.
    Unknown floor or spot ids are configuration errors.
    """

    def __init__(self, id: str = "spots"):
        super().__init__(id)
        self._floors: Dict[str, ParkingFloor] = {}
        self._spots: Dict[int, Spot] = {}

    # ========================================================================
    # CONFIGURATION
    # ========================================================================

    def add_floor(self, name: str) -> ParkingFloor:
        if name in self._floors:
            raise ConfigurationError(f"Floor {name} already exists")
        floor = ParkingFloor(name)
        self._floors[name] = floor
        self._increment_version()
        self._logger.info(f"Added floor {name}")
        return floor

    def add_spot(self, floor_name: str, spot_id: int, category: SpotCategory) -> Spot:
        floor = self.get_floor(floor_name)
        if spot_id in self._spots:
            raise ConfigurationError(f"Spot {spot_id} already exists")
        try:
            spot = Spot(spot_id, category, floor.name)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        self._spots[spot_id] = spot
        floor._add_spot(spot)
        self._increment_version()
        self._logger.info(f"Added {category} spot {spot_id} on floor {floor_name}")
        return spot

    def add_display_board(self, floor_name: str, board_id: int) -> DisplayBoard:
        floor = self.get_floor(floor_name)
        if any(board.id == board_id for f in self._floors.values() for board in f.display_boards):
            raise ConfigurationError(f"Display board {board_id} already exists")
        board = DisplayBoard(board_id, floor.name)
        floor._add_display_board(board)
        self._logger.info(f"Added display board {board_id} on floor {floor_name}")
        return board

    # ========================================================================
    # SPOT OPERATIONS
    # ========================================================================

    def free_spots_of_category(
        self,
        floor_name: str,
        category_predicate: CategoryPredicate
    ) -> Iterator[Spot]:
        """
        Lazily yield the free spots of one floor whose category matches,
        in ascending spot id. Read-only.
        """
        floor = self.get_floor(floor_name)
        if isinstance(category_predicate, SpotCategory):
            wanted = category_predicate
            matches: Callable[[SpotCategory], bool] = lambda category: category == wanted
        else:
            matches = category_predicate
        return (
            spot for spot in floor.all_spots()
            if matches(spot.category) and not spot.occupied
        )

    def reserve(self, spot_id: int, license_plate: str) -> bool:
        spot = self.get_spot(spot_id)
        if not spot.assign_vehicle(license_plate):
            self._logger.debug(f"Spot {spot_id} already occupied")
            return False
        self._increment_version()
        self._add_domain_event(SpotOccupiedEvent(spot.id, spot.floor_name, license_plate))
        self._logger.info(f"Spot {spot_id} reserved for {license_plate}")
        return True

    def release(self, spot_id: int) -> bool:
        spot = self.get_spot(spot_id)
        license_plate = spot.vehicle_license
        if not spot.remove_vehicle():
            self._logger.debug(f"Spot {spot_id} already free")
            return False
        self._increment_version()
        self._add_domain_event(SpotReleasedEvent(spot.id, spot.floor_name, license_plate))
        self._logger.info(f"Spot {spot_id} released")
        return True

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def get_floor(self, name: str) -> ParkingFloor:
        floor = self._floors.get(name)
        if floor is None:
            raise ConfigurationError(f"Unknown floor: {name}")
        return floor

    def get_spot(self, spot_id: int) -> Spot:
        spot = self._spots.get(spot_id)
        if spot is None:
            raise ConfigurationError(f"Unknown spot: {spot_id}")
        return spot

    def floors(self) -> List[ParkingFloor]:
        """Floors in configuration order"""
        return list(self._floors.values())

    def all_spots(self) -> List[Spot]:
        return sorted(self._spots.values(), key=lambda spot: spot.id)

    def snapshot(self) -> List[Dict[str, Any]]:
        """
        Point-in-time view of every spot. Takes no lock: each spot's
        occupancy is a single reference, so every entry is self-consistent.
        """
        return [spot.to_dict() for spot in self.all_spots()]

    @property
    def total_spots(self) -> int:
        return len(self._spots)

    @property
    def occupied_spots(self) -> int:
        return sum(1 for spot in self._spots.values() if spot.occupied)

    def __str__(self) -> str:
        return f"SpotRegistry: {self.occupied_spots}/{self.total_spots} occupied"


# ============================================================================
# TICKET LEDGER AGGREGATE
# ============================================================================

class TicketLedger(AggregateRoot):
    """
    Aggregate Root: Every ticket ever issued plus the vehicle registry

    issue() is the atomic unit of entry: spot lookup, reservation, ticket
    number allocation and ticket creation. Ticket numbers start right above
    ticket_number_floor and only grow. Tickets are never removed; terminal
    tickets stay queryable with their amount and timestamps.
    """

    def __init__(
        self,
        registry: SpotRegistry,
        matcher: 'SpotMatcher',
        ticket_repository,
        ticket_number_floor: int = 1000,
        activation: TicketActivation = TicketActivation.IMMEDIATE,
        id: str = "tickets"
    ):
        super().__init__(id)
        self._registry = registry
        self._matcher = matcher
        self._tickets = ticket_repository
        self._vehicles: Dict[str, Vehicle] = {}
        self._last_ticket_number = ticket_number_floor
        self.activation = activation

    # ========================================================================
    # ISSUANCE
    # ========================================================================

    def issue(
        self,
        vehicle: Vehicle,
        entrance_id: str,
        entry_time: datetime,
        prefer_electric: bool = False
    ) -> Ticket:
        """
        Issue a ticket for a vehicle at an entrance
        Raises: AlreadyParkedError, LotFullError
        """
        license_plate = vehicle.license_plate.value

        active = self.active_ticket_for(license_plate)
        if active is not None:
            self._logger.warning(
                f"Rejected entry for {license_plate}: already holds ticket {active.ticket_number}"
            )
            raise AlreadyParkedError(license_plate, active.ticket_number)

        spot = self._reserve_spot(vehicle, prefer_electric)

        self._last_ticket_number += 1
        ticket = Ticket(
            ticket_number=self._last_ticket_number,
            license_plate=license_plate,
            vehicle_class=vehicle.vehicle_class,
            entrance_id=entrance_id,
            spot_id=spot.id,
            entry_time=entry_time
        )
        if self.activation is TicketActivation.IMMEDIATE:
            ticket.transition_to(TicketStatus.IN_USE)

        self._tickets.add(ticket)
        vehicle.assign_ticket(ticket.ticket_number)
        self._vehicles[license_plate] = vehicle

        self._increment_version()
        self._add_domain_event(TicketIssuedEvent(ticket))
        self._logger.info(
            f"Issued ticket {ticket.ticket_number} to {license_plate} "
            f"for spot {spot.id} at entrance {entrance_id}"
        )
        return ticket

    def _reserve_spot(self, vehicle: Vehicle, prefer_electric: bool) -> Spot:
        # A failed reserve means the spot was taken after the lookup; the
        # matcher will not offer it again, so the loop is bounded by spot count.
        for _ in range(self._registry.total_spots + 1):
            spot = self._matcher.find_spot(vehicle.vehicle_class, prefer_electric)
            if spot is None:
                break
            if self._registry.reserve(spot.id, vehicle.license_plate.value):
                return spot
            self._logger.debug(f"Lost reservation race for spot {spot.id}, retrying")
        self._logger.warning(f"Lot full for {vehicle.vehicle_class}: {vehicle.license_plate}")
        raise LotFullError(vehicle.vehicle_class)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def activate(self, ticket: Ticket) -> Ticket:
        if ticket.status is not TicketStatus.ISSUED:
            self._logger.warning(
                f"Cannot activate ticket {ticket.ticket_number} in status {ticket.status.value}"
            )
            raise InvalidTicketStateError(
                f"Ticket {ticket.ticket_number} is {ticket.status.value}, expected issued",
                ticket.ticket_number, ticket.status
            )
        ticket.transition_to(TicketStatus.IN_USE)
        self._increment_version()
        self._logger.info(f"Ticket {ticket.ticket_number} activated")
        return ticket

    def record_payment(self, ticket: Ticket, payment: Payment, exit_time: datetime) -> Ticket:
        """Attach a completed payment and move the ticket to PAID"""
        ticket.transition_to(TicketStatus.PAID)
        ticket.amount = payment.amount
        ticket.payment = payment
        ticket.exit_time = exit_time
        self._increment_version()
        self._add_domain_event(TicketPaidEvent(ticket))
        self._logger.info(
            f"Ticket {ticket.ticket_number} paid {payment.amount} via {payment.method.value}"
        )
        return ticket

    def close(self, ticket: Ticket, status: TicketStatus, exit_id: Optional[str] = None) -> Ticket:
        """
        Move a ticket to a terminal status, free its spot and clear the
        vehicle's active ticket
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"{status.value} is not a terminal status")
        ticket.transition_to(status)
        if exit_id is not None:
            ticket.exit_id = exit_id

        self._registry.release(ticket.spot_id)
        vehicle = self._vehicles.get(ticket.license_plate)
        if vehicle is not None and vehicle.active_ticket_number == ticket.ticket_number:
            vehicle.clear_ticket()

        self._increment_version()
        self._add_domain_event(TicketClosedEvent(ticket))
        self._logger.info(f"Ticket {ticket.ticket_number} closed as {status.value}")
        return ticket

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def get(self, ticket_number: int) -> Ticket:
        ticket = self._tickets.get(ticket_number)
        if ticket is None:
            self._logger.warning(f"Ticket {ticket_number} not found")
            raise UnknownTicketError(ticket_number)
        return ticket

    def active_ticket_for(self, license_plate: str) -> Optional[Ticket]:
        vehicle = self._vehicles.get(license_plate)
        if vehicle is None or not vehicle.has_active_ticket:
            return None
        return self._tickets.get(vehicle.active_ticket_number)

    def tickets(self) -> List[Ticket]:
        return sorted(self._tickets.get_all(), key=lambda t: t.ticket_number)

    def active_tickets(self) -> List[Ticket]:
        return [ticket for ticket in self.tickets() if ticket.status.is_active]

    @property
    def last_ticket_number(self) -> int:
        return self._last_ticket_number

    def __str__(self) -> str:
        return f"TicketLedger: {len(self.active_tickets())} active tickets"
