#!/usr/bin/env python3
"""
DTO Unit Tests
"""

import json
import unittest
from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import ValidationError

from parkflow.application.dtos import (
    EntryRequestDTO, ExitRequestDTO, TicketDTO, PaymentDTO, ExitReceiptDTO,
    SpotSnapshotDTO, FloorAvailabilityDTO
)
from parkflow.domain.models import (
    Ticket, Payment, VehicleClass, TicketStatus, PaymentMethod
)

ENTRY = datetime(2024, 1, 15, 8, 0)


class TestRequestDTOs(unittest.TestCase):
    """Unit tests for request validation"""

    def test_entry_request_normalizes(self):
        request = EntryRequestDTO(license_plate="abc 123", vehicle_class="Truck")
        self.assertEqual(request.license_plate, "ABC 123")
        self.assertEqual(request.vehicle_class, "truck")
        self.assertFalse(request.prefer_electric)

    def test_entry_request_rejects_bad_input(self):
        with self.assertRaises(ValidationError):
            EntryRequestDTO(license_plate="!!", vehicle_class="car")
        with self.assertRaises(ValidationError):
            EntryRequestDTO(license_plate="ABC123", vehicle_class="bus")

    def test_exit_request(self):
        request = ExitRequestDTO(ticket_number=1001, payment_method="card")
        self.assertEqual(request.payment_method, "credit_card")
        with self.assertRaises(ValidationError):
            ExitRequestDTO(ticket_number=0)
        with self.assertRaises(ValidationError):
            ExitRequestDTO(ticket_number=1001, payment_method="barter")


class TestResponseDTOs(unittest.TestCase):
    """Unit tests for DTOs built from domain objects"""

    def setUp(self):
        self.ticket = Ticket(1001, "ABC123", VehicleClass.CAR, "north", 4, ENTRY)
        self.ticket.transition_to(TicketStatus.IN_USE)

    def test_ticket_dto_from_entity(self):
        dto = TicketDTO.model_validate(self.ticket)
        self.assertEqual(dto.ticket_number, 1001)
        self.assertEqual(dto.status, "in_use")
        self.assertEqual(dto.vehicle_class, "car")
        self.assertIsNone(dto.payment)
        self.assertTrue(dto.is_active)

    def test_ticket_dto_with_payment(self):
        payment = Payment(Decimal('87.50'), PaymentMethod.CASH)
        payment.mark_completed(ENTRY + timedelta(hours=2))
        self.ticket.transition_to(TicketStatus.PAID)
        self.ticket.payment = payment
        self.ticket.amount = payment.amount
        dto = TicketDTO.model_validate(self.ticket)
        self.assertEqual(dto.payment.amount, Decimal('87.50'))
        self.assertEqual(dto.payment.method, "cash")
        data = json.loads(dto.to_json())
        self.assertEqual(data["payment"]["status"], "completed")
        self.assertEqual(PaymentDTO.model_validate(payment).payment_id, payment.payment_id)

    def test_exit_receipt(self):
        payment = Payment(Decimal('50.00'), PaymentMethod.CREDIT_CARD)
        self.ticket.payment = payment
        self.ticket.amount = payment.amount
        self.ticket.exit_time = ENTRY + timedelta(minutes=45)
        self.ticket.exit_id = "south"
        receipt = ExitReceiptDTO.from_ticket(self.ticket)
        self.assertEqual(receipt.duration_minutes, 45.0)
        self.assertEqual(receipt.payment_method, "credit_card")
        self.assertEqual(receipt.exit_id, "south")

    def test_snapshot_and_availability(self):
        snapshot = SpotSnapshotDTO(id=1, category="compact", floor_name="L1", occupied=False)
        self.assertEqual(snapshot.to_dict(exclude_none=True), {
            "id": 1, "category": "compact", "floor_name": "L1", "occupied": False,
        })
        availability = FloorAvailabilityDTO(floor_name="L1", total_spots=2, free_spots=0)
        self.assertTrue(availability.is_full)
        self.assertEqual(FloorAvailabilityDTO.from_dict(availability.to_dict()), availability)


if __name__ == '__main__':
    unittest.main()
