"""
Domain Exceptions for the Parking Engine

Every error the engine signals to its callers (entrance/exit panels and
admin tooling) derives from ParkingError. None of them is retried inside the
engine; PaymentFailedError is the only one a caller can recover from by
simply trying again.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Payment, TicketStatus, VehicleClass


class ParkingError(Exception):
    """Base exception for parking engine errors"""
    pass


class ConfigurationError(ParkingError):
    """Invalid facility layout or reference to an unknown floor, spot, entrance or exit"""
    pass


class LotFullError(ParkingError):
    """No eligible free spot exists for the vehicle's class"""

    def __init__(self, vehicle_class: 'VehicleClass'):
        super().__init__(f"No free spot available for {vehicle_class}")
        self.vehicle_class = vehicle_class


class AlreadyParkedError(ParkingError):
    """Vehicle already holds a non-terminal ticket"""

    def __init__(self, license_plate: str, ticket_number: int):
        super().__init__(
            f"Vehicle {license_plate} is already parked (ticket {ticket_number})"
        )
        self.license_plate = license_plate
        self.ticket_number = ticket_number


class UnknownTicketError(ParkingError):
    """Referenced ticket number does not exist"""

    def __init__(self, ticket_number: int):
        super().__init__(f"Ticket {ticket_number} not found")
        self.ticket_number = ticket_number


class InvalidTicketStateError(ParkingError):
    """Operation attempted against a ticket that is not in the required state"""

    def __init__(self, message: str, ticket_number: Optional[int] = None,
                 status: Optional['TicketStatus'] = None):
        super().__init__(message)
        self.ticket_number = ticket_number
        self.status = status


class NotPaidError(InvalidTicketStateError):
    """Exit validation attempted on a ticket that has not been paid"""
    pass


class InvalidTransitionError(ParkingError):
    """Ticket status transition not permitted from the current state"""

    def __init__(self, ticket_number: int, current: 'TicketStatus', requested: 'TicketStatus'):
        super().__init__(
            f"Ticket {ticket_number}: cannot move from {current.value} to {requested.value}"
        )
        self.ticket_number = ticket_number
        self.current = current
        self.requested = requested


class PaymentFailedError(ParkingError):
    """Payment gateway declined the transaction; the ticket stays payable"""

    def __init__(self, ticket_number: int, payment: 'Payment'):
        super().__init__(
            f"Payment of {payment.amount} for ticket {ticket_number} "
            f"via {payment.method.value} failed"
        )
        self.ticket_number = ticket_number
        self.payment = payment
