"""
Data Transfer Objects (DTOs) for the Parking Engine

This module defines DTOs for data leaving and entering the engine:
1. Input DTOs - validated requests from entrance and exit panels
2. Output DTOs - tickets, payments, receipts and availability views

DTO Principles:
- Built from domain objects via from_attributes, never shared with them
- Validation at creation
- No business logic, only data
"""

from typing import Dict, List, Optional, Any
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict, field_validator

from ..domain.models import (
    VehicleClass, SpotCategory, TicketStatus, PaymentMethod, PaymentStatus,
    LicensePlate, Ticket
)


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,  # Allow creation from domain entities
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        data = self.model_dump(**kwargs)
        if exclude_none:
            data = {k: v for k, v in data.items() if v is not None}
        return data

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaseDTO':
        return cls(**data)


# ============================================================================
# REQUEST DTOs
# ============================================================================

class EntryRequestDTO(BaseDTO):
    """DTO for a ticket request at an entrance panel"""
    license_plate: str = Field(description="License plate number")
    vehicle_class: VehicleClass = Field(description="Vehicle class")
    prefer_electric: bool = Field(default=False, description="Ask for a charging spot")

    @field_validator('license_plate')
    @classmethod
    def validate_license_plate(cls, v: str) -> str:
        return LicensePlate(v).value

    @field_validator('vehicle_class', mode='before')
    @classmethod
    def parse_vehicle_class(cls, v):
        if isinstance(v, str):
            try:
                return VehicleClass(v.strip().lower())
            except ValueError:
                raise ValueError(f"Unknown vehicle class: {v}")
        return v


class ExitRequestDTO(BaseDTO):
    """DTO for an exit request at an exit panel"""
    ticket_number: int = Field(gt=0, description="Ticket number")
    payment_method: PaymentMethod = Field(default=PaymentMethod.CREDIT_CARD, description="Payment method")

    @field_validator('payment_method', mode='before')
    @classmethod
    def parse_payment_method(cls, v):
        return PaymentMethod.parse(v)


# ============================================================================
# RESPONSE DTOs
# ============================================================================

class PaymentDTO(BaseDTO):
    """DTO for a settled payment"""
    payment_id: str
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    completed_at: Optional[datetime] = None


class TicketDTO(BaseDTO):
    """DTO for a parking ticket"""
    ticket_number: int
    license_plate: str
    vehicle_class: VehicleClass
    entrance_id: str
    spot_id: int
    entry_time: datetime
    exit_time: Optional[datetime] = None
    exit_id: Optional[str] = None
    amount: Decimal = Decimal('0.00')
    status: TicketStatus
    payment: Optional[PaymentDTO] = None

    @property
    def is_active(self) -> bool:
        return TicketStatus(self.status).is_active


class ExitReceiptDTO(BaseDTO):
    """DTO handed back by an exit panel after a validated exit"""
    ticket_number: int
    license_plate: str
    spot_id: int
    entry_time: datetime
    exit_time: datetime
    duration_minutes: float
    amount: Decimal
    payment_method: Optional[PaymentMethod] = None
    exit_id: Optional[str] = None
    status: TicketStatus

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> 'ExitReceiptDTO':
        exit_time = ticket.exit_time or ticket.entry_time
        return cls(
            ticket_number=ticket.ticket_number,
            license_plate=ticket.license_plate,
            spot_id=ticket.spot_id,
            entry_time=ticket.entry_time,
            exit_time=exit_time,
            duration_minutes=round((exit_time - ticket.entry_time).total_seconds() / 60, 2),
            amount=ticket.amount,
            payment_method=ticket.payment.method if ticket.payment else None,
            exit_id=ticket.exit_id,
            status=ticket.status,
        )


class SpotSnapshotDTO(BaseDTO):
    """Point-in-time state of a single spot"""
    id: int
    category: SpotCategory
    floor_name: str
    occupied: bool
    vehicle_license: Optional[str] = None


class FloorAvailabilityDTO(BaseDTO):
    """Free-spot counts of one floor"""
    floor_name: str
    total_spots: int
    free_spots: int
    free_by_category: Dict[str, int] = Field(default_factory=dict)

    @property
    def is_full(self) -> bool:
        return self.free_spots == 0


class FacilityStatusDTO(BaseDTO):
    """Facility-wide occupancy summary"""
    total_spots: int
    occupied_spots: int
    active_tickets: int
    last_ticket_number: int
    floors: List[FloorAvailabilityDTO] = Field(default_factory=list)

    @property
    def occupancy_rate(self) -> float:
        if self.total_spots == 0:
            return 0.0
        return (self.occupied_spots / self.total_spots) * 100.0
