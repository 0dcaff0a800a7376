#!/usr/bin/env python3
"""
Repository Unit Tests
"""

import unittest
from datetime import datetime

from parkflow.domain.models import Ticket, TicketStatus, VehicleClass
from parkflow.infrastructure.repositories import InMemoryTicketRepository


def make_ticket(number: int, plate: str = "ABC123") -> Ticket:
    return Ticket(number, plate, VehicleClass.CAR, "north", 1, datetime(2024, 1, 1, 8))


class TestInMemoryTicketRepository(unittest.TestCase):
    """Unit tests for the ticket arena"""

    def setUp(self):
        self.repository = InMemoryTicketRepository()

    def test_add_and_get_by_ticket_number(self):
        ticket = self.repository.add(make_ticket(1001))
        self.assertIs(self.repository.get(1001), ticket)
        self.assertTrue(self.repository.exists(1001))
        self.assertIsNone(self.repository.get(1002))

    def test_duplicate_number_rejected(self):
        self.repository.add(make_ticket(1001))
        with self.assertRaises(KeyError):
            self.repository.add(make_ticket(1001, "XYZ789"))

    def test_get_all_pagination(self):
        for number in range(1001, 1006):
            self.repository.add(make_ticket(number, f"CAR{number}"))
        self.assertEqual(len(self.repository.get_all()), 5)
        self.assertEqual([t.ticket_number for t in self.repository.get_all(skip=1, limit=2)], [1002, 1003])

    def test_update_and_delete(self):
        ticket = self.repository.add(make_ticket(1001))
        self.assertIs(self.repository.update(ticket), ticket)
        with self.assertRaises(KeyError):
            self.repository.update(make_ticket(2000))
        self.assertTrue(self.repository.delete(1001))
        self.assertFalse(self.repository.delete(1001))
        self.assertEqual(self.repository.count(), 0)

    def test_find_by_license_plate_and_status(self):
        first = self.repository.add(make_ticket(1001))
        self.repository.add(make_ticket(1002, "XYZ789"))
        second = self.repository.add(make_ticket(1003))
        first.transition_to(TicketStatus.IN_USE)
        self.assertEqual(self.repository.find_by_license_plate("ABC123"), [first, second])
        self.assertEqual(self.repository.find_by_status(TicketStatus.IN_USE), [first])

    def test_clear(self):
        self.repository.add(make_ticket(1001))
        self.repository.clear()
        self.assertEqual(self.repository.count(), 0)


if __name__ == '__main__':
    unittest.main()
