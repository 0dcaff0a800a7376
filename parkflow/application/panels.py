"""
Entrance and exit panels

Thin adapters bound to one entrance or exit id. They validate the raw
request through the request DTOs and forward it to the facility.
"""

from typing import Union
import logging

from ..domain.models import VehicleClass, PaymentMethod
from .dtos import EntryRequestDTO, ExitRequestDTO, TicketDTO, ExitReceiptDTO, PaymentDTO
from .facility import ParkingFacility


class EntrancePanel:
    """Ticket dispenser at one entrance"""

    def __init__(self, facility: ParkingFacility, entrance_id: str):
        self.facility = facility
        self.entrance_id = entrance_id
        self.logger = logging.getLogger(self.__class__.__name__)

    def get_ticket(
        self,
        license_plate: str,
        vehicle_class: Union[VehicleClass, str],
        prefer_electric: bool = False
    ) -> TicketDTO:
        request = EntryRequestDTO(
            license_plate=license_plate,
            vehicle_class=vehicle_class,
            prefer_electric=prefer_electric,
        )
        self.logger.debug(f"Entrance {self.entrance_id}: ticket request for {request.license_plate}")
        return self.facility.request_ticket(
            request.license_plate,
            request.vehicle_class,
            entrance_id=self.entrance_id,
            prefer_electric=request.prefer_electric,
        )


class ExitPanel:
    """Payment terminal and barrier at one exit"""

    def __init__(self, facility: ParkingFacility, exit_id: str):
        self.facility = facility
        self.exit_id = exit_id
        self.logger = logging.getLogger(self.__class__.__name__)

    def process(
        self,
        ticket_number: int,
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CREDIT_CARD
    ) -> ExitReceiptDTO:
        request = ExitRequestDTO(ticket_number=ticket_number, payment_method=payment_method)
        self.logger.debug(f"Exit {self.exit_id}: processing ticket {request.ticket_number}")
        return self.facility.request_exit(
            request.ticket_number, request.payment_method, exit_id=self.exit_id
        )


class PayStation:
    """Pay-on-foot machine; the ticket is then validated at any exit"""

    def __init__(self, facility: ParkingFacility):
        self.facility = facility

    def pay(
        self,
        ticket_number: int,
        payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH
    ) -> PaymentDTO:
        request = ExitRequestDTO(ticket_number=ticket_number, payment_method=payment_method)
        return self.facility.pay_ticket(request.ticket_number, request.payment_method)
