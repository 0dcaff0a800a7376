"""
parkflow - parking allocation and ticket lifecycle engine

Allocates spots to arriving vehicles, tracks tickets from entry to validated
exit and computes time-based fees.
"""

__version__ = "1.0.0"

from .domain.exceptions import (
    ParkingError, ConfigurationError, LotFullError, AlreadyParkedError,
    UnknownTicketError, InvalidTicketStateError, NotPaidError,
    InvalidTransitionError, PaymentFailedError
)
from .domain.models import (
    VehicleClass, SpotCategory, TicketStatus, PaymentMethod, PaymentStatus,
    FullnessPolicy, TicketActivation
)
from .domain.strategies import calculate_fee
from .application.facility import ParkingFacility
from .application.panels import EntrancePanel, ExitPanel, PayStation
from .infrastructure.config import (
    AppSettings, FacilitySettings, load_settings, settings_from_yaml,
    build_facility, setup_logging
)
