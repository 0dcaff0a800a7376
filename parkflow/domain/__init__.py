"""Domain layer: models, aggregates, strategies and exceptions"""

from .exceptions import (
    ParkingError, ConfigurationError, LotFullError, AlreadyParkedError,
    UnknownTicketError, InvalidTicketStateError, NotPaidError,
    InvalidTransitionError, PaymentFailedError
)
from .models import (
    LicensePlate, TimeRange, VehicleClass, SpotCategory, TicketStatus,
    PaymentStatus, PaymentMethod, FullnessPolicy, TicketActivation,
    Spot, ElectricPanel, Vehicle, Ticket, Payment, Entrance, Exit,
    DisplayBoard, EventType, DomainEvent
)
from .aggregates import AggregateRoot, ParkingFloor, SpotRegistry, TicketLedger
from .strategies import (
    COMPATIBILITY, SpotMatcher, calculate_fee, TieredHourlyPricingStrategy,
    PaymentGateway, CashGateway, CreditCardGateway
)
