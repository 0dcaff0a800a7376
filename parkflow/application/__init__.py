"""Application layer: facility coordinator, payments, exit validation, panels and DTOs"""

from .facility import ParkingFacility
from .payments import PaymentProcessor
from .exit_validation import ExitValidator
from .panels import EntrancePanel, ExitPanel, PayStation
from .dtos import (
    BaseDTO, EntryRequestDTO, ExitRequestDTO, TicketDTO, PaymentDTO,
    ExitReceiptDTO, SpotSnapshotDTO, FloorAvailabilityDTO, FacilityStatusDTO
)
