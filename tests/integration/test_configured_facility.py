#!/usr/bin/env python3
"""
Configuration Integration Tests

Builds facilities from YAML and runs vehicles through them.
"""

import logging
import os
import tempfile
import unittest
from decimal import Decimal

from parkflow.infrastructure.config import (
    settings_from_yaml, load_settings, build_facility, setup_logging
)
from parkflow.domain.exceptions import ConfigurationError
from parkflow.domain.models import (
    VehicleClass, SpotCategory, FullnessPolicy, TicketActivation
)
from tests.fixtures import FakeClock

LAYOUT = """
name: downtown
base_rate_per_hour: 20
ticket_number_floor: 500
fullness_policy: all_spots
entrances: [north, east]
exits: [south]
floors:
  - name: L1
    spots:
      - {id: 1, category: Compact}
      - {id: 2, category: ELECTRIC}
    display_boards: [1]
  - name: L2
    spots:
      - {id: 10, category: large}
      - {id: 11, category: motorcycle}
"""


class TestConfiguredFacility(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.settings = settings_from_yaml(LAYOUT)
        self.facility = build_facility(self.settings, clock=self.clock)

    def test_layout_applied(self):
        self.assertEqual(self.facility.name, "downtown")
        self.assertEqual(self.facility.fullness_policy, FullnessPolicy.ALL_SPOTS)
        self.assertEqual([e.id for e in self.facility.entrances], ["north", "east"])
        self.assertEqual(self.facility.registry.total_spots, 4)
        self.assertEqual(self.facility.registry.get_spot(2).category, SpotCategory.ELECTRIC)

    def test_floor_order_drives_allocation(self):
        truck = self.facility.request_ticket("TRUCK1", VehicleClass.TRUCK)
        moto = self.facility.request_ticket("MOTO1", VehicleClass.MOTORCYCLE)
        self.assertEqual(truck.spot_id, 10)
        # Compact on L1 beats the motorcycle spot on L2
        self.assertEqual(moto.spot_id, 1)

    def test_first_ticket_and_rate(self):
        ticket = self.facility.request_ticket("ABC123", VehicleClass.CAR)
        self.assertEqual(ticket.ticket_number, 501)
        self.assertEqual(ticket.entrance_id, "north")
        self.clock.advance(hours=3)
        receipt = self.facility.request_exit(ticket.ticket_number, "cash")
        # 20 + 2 * 15
        self.assertEqual(receipt.amount, Decimal('50.00'))

    def test_display_board_configured(self):
        [board] = self.facility.registry.get_floor("L1").display_boards
        self.assertEqual(board.free_counts[SpotCategory.ELECTRIC], 1)
        self.facility.request_ticket("EV1", VehicleClass.CAR, prefer_electric=True)
        self.assertEqual(board.free_counts[SpotCategory.ELECTRIC], 0)

    def test_deferred_activation_from_yaml(self):
        settings = settings_from_yaml("ticket_activation: deferred\nfloors: [{name: L1, spots: [{id: 1, category: compact}]}]")
        self.assertEqual(settings.ticket_activation, TicketActivation.DEFERRED)
        facility = build_facility(settings, clock=self.clock)
        self.assertEqual(facility.request_ticket("ABC123", "car").status, "issued")


class TestLoadingFromDisk(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        self.tmpdir.cleanup()

    def test_load_settings_and_logging(self):
        log_file = os.path.join(self.tmpdir.name, "logs", "parkflow.log")
        path = os.path.join(self.tmpdir.name, "facility.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write(LAYOUT + f"logging:\n  level: debug\n  file: {log_file}\n")

        settings = load_settings(path)
        self.assertEqual(settings.logging.level, "DEBUG")

        logger = setup_logging(settings.logging)
        logger.debug("facility loaded")
        for handler in logging.getLogger().handlers:
            handler.flush()
        self.assertTrue(os.path.exists(log_file))

    def test_example_layout_loads(self):
        path = os.path.join(
            os.path.dirname(__file__), "..", "..", "config", "facility.example.yaml"
        )
        facility = build_facility(load_settings(path), clock=FakeClock())
        self.assertEqual(facility.registry.total_spots, 7)
        self.assertEqual(facility.request_ticket("ABC123", VehicleClass.MOTORCYCLE).spot_id, 1)

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_settings(os.path.join(self.tmpdir.name, "absent.yaml"))

    def test_duplicate_spot_across_floors(self):
        text = """
floors:
  - name: L1
    spots: [{id: 1, category: compact}]
  - name: L2
    spots: [{id: 1, category: large}]
"""
        with self.assertRaises(ConfigurationError):
            settings_from_yaml(text)


if __name__ == '__main__':
    unittest.main()
