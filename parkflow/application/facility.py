"""
Parking Facility Application Service

This module implements the coordinator that entrance panels, exit panels,
pay stations and administrators talk to.

Responsibilities:
1. Wire the registry, matcher, ledger, pricing, payments and exit validation
2. Serialize every mutation under one facility-wide re-entrant lock
3. Drain domain events from the aggregates and publish them on the event bus
4. Translate domain objects into DTOs for callers

Key Principles:
- Dependency Injection for testability (clock, gateways, bus, repository)
- No global instance; every facility is built explicitly
- Entrance requests fail fast and never queue
"""

from typing import Callable, Dict, List, Optional, Union
from datetime import datetime
from decimal import Decimal
import logging
import threading

from ..domain.exceptions import ConfigurationError, InvalidTicketStateError
from ..domain.models import (
    LicensePlate, Vehicle, Ticket, Entrance, Exit, DisplayBoard, Spot,
    VehicleClass, SpotCategory, TicketStatus, PaymentMethod,
    FullnessPolicy, TicketActivation, EventType
)
from ..domain.aggregates import SpotRegistry, TicketLedger, ParkingFloor
from ..domain.strategies import (
    SpotMatcher, TieredHourlyPricingStrategy, PaymentGateway
)
from ..infrastructure.messaging import EventBus, DisplayBoardRefresher
from ..infrastructure.repositories import InMemoryTicketRepository
from .payments import PaymentProcessor
from .exit_validation import ExitValidator
from .dtos import (
    TicketDTO, PaymentDTO, ExitReceiptDTO, SpotSnapshotDTO,
    FloorAvailabilityDTO, FacilityStatusDTO
)

DEFAULT_ENTRANCE_ID = "main"
DEFAULT_EXIT_ID = "main"


class ParkingFacility:
    """
    Coordinator for one parking facility

    Use Cases:
    1. Entry: request_ticket
    2. Payment and exit: pay_ticket, validate_exit, request_exit
    3. Administration: layout configuration, rate changes, cancel/refund
    4. Monitoring: snapshots, floor availability, fullness
    """

    def __init__(
        self,
        name: str = "parkflow",
        base_rate_per_hour: Union[Decimal, float, int] = Decimal('50'),
        ticket_number_floor: int = 1000,
        fullness_policy: FullnessPolicy = FullnessPolicy.PER_CLASS,
        activation: TicketActivation = TicketActivation.IMMEDIATE,
        gateways: Optional[Dict[PaymentMethod, PaymentGateway]] = None,
        event_bus: Optional[EventBus] = None,
        ticket_repository: Optional[InMemoryTicketRepository] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.name = name
        self.fullness_policy = fullness_policy
        self._lock = threading.RLock()
        self._clock = clock or datetime.now

        self.registry = SpotRegistry()
        self.matcher = SpotMatcher(self.registry)
        self.pricing = TieredHourlyPricingStrategy(base_rate_per_hour)
        self.ticket_repository = ticket_repository or InMemoryTicketRepository()
        self.ledger = TicketLedger(
            self.registry, self.matcher, self.ticket_repository,
            ticket_number_floor=ticket_number_floor,
            activation=activation
        )
        self.payments = PaymentProcessor(self.ledger, self.pricing, gateways, lock=self._lock)
        self.exit_validator = ExitValidator(self.ledger, lock=self._lock)

        self.event_bus = event_bus or EventBus()
        refresher = DisplayBoardRefresher(self.registry, self._clock)
        self.event_bus.subscribe(EventType.SPOT_OCCUPIED, refresher)
        self.event_bus.subscribe(EventType.SPOT_RELEASED, refresher)

        self._entrances: Dict[str, Entrance] = {}
        self._exits: Dict[str, Exit] = {}

        self.logger.info(f"ParkingFacility {name} initialized")

    # ========================================================================
    # CONFIGURATION
    # ========================================================================

    def add_floor(self, name: str) -> ParkingFloor:
        with self._lock:
            return self.registry.add_floor(name)

    def add_spot(self, floor_name: str, spot_id: int, category: Union[SpotCategory, str]) -> Spot:
        with self._lock:
            return self.registry.add_spot(floor_name, spot_id, self._parse_category(category))

    def add_entrance(self, entrance_id: str) -> Entrance:
        with self._lock:
            if entrance_id in self._entrances:
                raise ConfigurationError(f"Entrance {entrance_id} already exists")
            entrance = Entrance(entrance_id)
            self._entrances[entrance_id] = entrance
            self.logger.info(f"Added entrance {entrance_id}")
            return entrance

    def add_exit(self, exit_id: str) -> Exit:
        with self._lock:
            if exit_id in self._exits:
                raise ConfigurationError(f"Exit {exit_id} already exists")
            exit_panel = Exit(exit_id)
            self._exits[exit_id] = exit_panel
            self.logger.info(f"Added exit {exit_id}")
            return exit_panel

    def add_display_board(self, floor_name: str, board_id: int) -> DisplayBoard:
        with self._lock:
            return self.registry.add_display_board(floor_name, board_id)

    def set_base_rate(self, base_rate_per_hour: Union[Decimal, float, int]) -> None:
        """Applies to fees computed from now on; settled tickets keep their amount"""
        with self._lock:
            self.pricing.base_rate_per_hour = base_rate_per_hour
            self.logger.info(f"Base rate set to {self.pricing.base_rate_per_hour}/h")

    @property
    def entrances(self) -> List[Entrance]:
        return list(self._entrances.values())

    @property
    def exits(self) -> List[Exit]:
        return list(self._exits.values())

    # ========================================================================
    # ENTRY
    # ========================================================================

    def request_ticket(
        self,
        license_plate: str,
        vehicle_class: Union[VehicleClass, str],
        entrance_id: Optional[str] = None,
        prefer_electric: bool = False
    ) -> TicketDTO:
        """
        Issue a ticket for an arriving vehicle
        Raises: LotFullError, AlreadyParkedError, ConfigurationError, ValueError
        """
        plate = LicensePlate(license_plate)
        vclass = self._parse_vehicle_class(vehicle_class)

        with self._lock:
            entrance = self._resolve_entrance(entrance_id)
            try:
                ticket = self.ledger.issue(
                    Vehicle(plate, vclass), entrance.id, self._clock(), prefer_electric
                )
                return TicketDTO.model_validate(ticket)
            finally:
                self._publish_events()

    def activate_ticket(self, ticket_number: int) -> TicketDTO:
        with self._lock:
            ticket = self.ledger.get(ticket_number)
            self.ledger.activate(ticket)
            self._publish_events()
            return TicketDTO.model_validate(ticket)

    # ========================================================================
    # PAYMENT AND EXIT
    # ========================================================================

    def pay_ticket(self, ticket_number: int, payment_method: Union[PaymentMethod, str]) -> PaymentDTO:
        """
        Pay-station flow: settle the fee without leaving
        Raises: UnknownTicketError, InvalidTicketStateError, PaymentFailedError
        """
        method = PaymentMethod.parse(payment_method)
        ticket = self._get(ticket_number)
        try:
            payment = self.payments.pay(ticket, method, self._clock())
        finally:
            with self._lock:
                self._publish_events()
        return PaymentDTO.model_validate(payment)

    def validate_exit(self, ticket_number: int, exit_id: Optional[str] = None) -> TicketDTO:
        """
        Raises: UnknownTicketError, NotPaidError, ConfigurationError
        """
        with self._lock:
            exit_panel = self._resolve_exit(exit_id)
            ticket = self.ledger.get(ticket_number)
            try:
                self.exit_validator.validate(ticket, exit_panel.id)
                return TicketDTO.model_validate(ticket)
            finally:
                self._publish_events()

    def request_exit(
        self,
        ticket_number: int,
        payment_method: Union[PaymentMethod, str],
        exit_id: Optional[str] = None
    ) -> ExitReceiptDTO:
        """
        Exit-panel flow: pay if still IN_USE, then validate
        A ticket already paid at a pay station goes straight to validation.
        """
        method = PaymentMethod.parse(payment_method)
        with self._lock:
            exit_panel = self._resolve_exit(exit_id)
            ticket = self.ledger.get(ticket_number)
            needs_payment = ticket.status is TicketStatus.IN_USE

        if needs_payment:
            self.pay_ticket(ticket_number, method)

        with self._lock:
            try:
                # A concurrent exit may have validated the ticket we just paid
                if not (needs_payment and ticket.status is TicketStatus.VALIDATED):
                    self.exit_validator.validate(ticket, exit_panel.id)
                receipt = ExitReceiptDTO.from_ticket(ticket)
            finally:
                self._publish_events()

        self.logger.info(
            f"Vehicle {ticket.license_plate} left through exit {exit_panel.id}, paid {ticket.amount}"
        )
        return receipt

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def cancel_ticket(self, ticket_number: int) -> TicketDTO:
        """Void a ticket and free its spot"""
        return self._close_administratively(ticket_number, TicketStatus.CANCELED)

    def refund_ticket(self, ticket_number: int) -> TicketDTO:
        """Refund a ticket; a settled payment is flipped to REFUNDED and the spot freed"""
        return self._close_administratively(ticket_number, TicketStatus.REFUNDED)

    def _close_administratively(self, ticket_number: int, status: TicketStatus) -> TicketDTO:
        with self._lock:
            ticket = self.ledger.get(ticket_number)
            if ticket.payment_in_progress:
                self.logger.warning(
                    f"Cannot {status.value} ticket {ticket_number}: payment in progress"
                )
                raise InvalidTicketStateError(
                    f"Ticket {ticket_number} has a payment in progress",
                    ticket_number, ticket.status
                )
            try:
                self.ledger.close(ticket, status)
                if status is TicketStatus.REFUNDED and ticket.payment is not None:
                    ticket.payment.mark_refunded()
                return TicketDTO.model_validate(ticket)
            finally:
                self._publish_events()

    # ========================================================================
    # ELECTRIC SPOTS
    # ========================================================================

    def start_charging(self, spot_id: int) -> bool:
        """Start the charging meter of an occupied electric spot"""
        with self._lock:
            spot = self._electric_spot(spot_id)
            if not spot.occupied:
                self.logger.warning(f"Cannot start charging on free spot {spot_id}")
                return False
            started = spot.panel.start_charging(self._clock())
            if started:
                self.logger.info(f"Charging started on spot {spot_id}")
            return started

    def cancel_charging(self, spot_id: int) -> bool:
        with self._lock:
            spot = self._electric_spot(spot_id)
            cancelled = spot.panel.cancel_charging()
            self.logger.info(f"Charging cancelled on spot {spot_id}")
            return cancelled

    def _electric_spot(self, spot_id: int) -> Spot:
        spot = self.registry.get_spot(spot_id)
        if spot.panel is None:
            raise ConfigurationError(f"Spot {spot_id} is not an electric spot")
        return spot

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def get_ticket(self, ticket_number: int) -> TicketDTO:
        with self._lock:
            return TicketDTO.model_validate(self.ledger.get(ticket_number))

    def tickets(self, status: Optional[TicketStatus] = None) -> List[TicketDTO]:
        with self._lock:
            tickets = self.ledger.tickets()
            if status is not None:
                tickets = [t for t in tickets if t.status is status]
            return [TicketDTO.model_validate(t) for t in tickets]

    def ticket_history(self, license_plate: str) -> List[TicketDTO]:
        plate = LicensePlate(license_plate).value
        with self._lock:
            return [
                TicketDTO.model_validate(t)
                for t in self.ticket_repository.find_by_license_plate(plate)
            ]

    def quote_fee(self, ticket_number: int) -> Decimal:
        """Fee the ticket would be charged if paid right now"""
        with self._lock:
            ticket = self.ledger.get(ticket_number)
            return self.payments.quote(ticket, self._clock()).amount

    def snapshot_spots(self) -> List[SpotSnapshotDTO]:
        """Lock-free view for display boards; every entry is self-consistent"""
        return [SpotSnapshotDTO(**entry) for entry in self.registry.snapshot()]

    def floor_availability(self) -> List[FloorAvailabilityDTO]:
        result = []
        for floor in self.registry.floors():
            counts = floor.free_counts()
            result.append(FloorAvailabilityDTO(
                floor_name=floor.name,
                total_spots=len(floor.all_spots()),
                free_spots=sum(counts.values()),
                free_by_category={category.value: count for category, count in counts.items()},
            ))
        return result

    def is_full(
        self,
        vehicle_class: Optional[Union[VehicleClass, str]] = None,
        prefer_electric: bool = False
    ) -> bool:
        """
        With a vehicle class: no eligible free spot for it, counting electric
        spots only when prefer_electric is set, as request_ticket does.
        Without one: depends on the fullness policy.
        """
        if vehicle_class is not None:
            return not self.matcher.can_serve(
                self._parse_vehicle_class(vehicle_class), prefer_electric
            )
        if self.fullness_policy is FullnessPolicy.ALL_SPOTS:
            return self.registry.occupied_spots == self.registry.total_spots
        return not any(self.matcher.can_serve(vclass, True) for vclass in VehicleClass)

    def status(self) -> FacilityStatusDTO:
        with self._lock:
            return FacilityStatusDTO(
                total_spots=self.registry.total_spots,
                occupied_spots=self.registry.occupied_spots,
                active_tickets=len(self.ledger.active_tickets()),
                last_ticket_number=self.ledger.last_ticket_number,
                floors=self.floor_availability(),
            )

    # ========================================================================
    # INTERNAL HELPER METHODS
    # ========================================================================

    def _get(self, ticket_number: int) -> Ticket:
        with self._lock:
            return self.ledger.get(ticket_number)

    def _resolve_entrance(self, entrance_id: Optional[str]) -> Entrance:
        if entrance_id is None:
            if self._entrances:
                return next(iter(self._entrances.values()))
            return Entrance(DEFAULT_ENTRANCE_ID)
        entrance = self._entrances.get(entrance_id)
        if entrance is None:
            self.logger.warning(f"Unknown entrance: {entrance_id}")
            raise ConfigurationError(f"Unknown entrance: {entrance_id}")
        return entrance

    def _resolve_exit(self, exit_id: Optional[str]) -> Exit:
        if exit_id is None:
            if self._exits:
                return next(iter(self._exits.values()))
            return Exit(DEFAULT_EXIT_ID)
        exit_panel = self._exits.get(exit_id)
        if exit_panel is None:
            self.logger.warning(f"Unknown exit: {exit_id}")
            raise ConfigurationError(f"Unknown exit: {exit_id}")
        return exit_panel

    def _publish_events(self) -> None:
        events = self.registry.clear_events() + self.ledger.clear_events()
        self.event_bus.publish_all(events)

    @staticmethod
    def _parse_vehicle_class(value: Union[VehicleClass, str]) -> VehicleClass:
        if isinstance(value, VehicleClass):
            return value
        try:
            return VehicleClass(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown vehicle class: {value}")

    @staticmethod
    def _parse_category(value: Union[SpotCategory, str]) -> SpotCategory:
        if isinstance(value, SpotCategory):
            return value
        try:
            return SpotCategory(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unknown spot category: {value}")

    def __str__(self) -> str:
        return f"ParkingFacility {self.name}: {self.registry}"
