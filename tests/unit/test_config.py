#!/usr/bin/env python3
"""
Configuration Unit Tests
"""

import logging
import os
import tempfile
import unittest
from decimal import Decimal

from parkflow.domain.exceptions import ConfigurationError
from parkflow.domain.models import SpotCategory, FullnessPolicy, TicketActivation
from parkflow.infrastructure.config import (
    AppSettings, FacilitySettings, LoggingSettings,
    settings_from_yaml, load_settings, build_facility, setup_logging
)

LAYOUT = """
name: downtown
base_rate_per_hour: 40
ticket_number_floor: 5000
fullness_policy: all_spots
ticket_activation: deferred
entrances: [north, east]
exits: [south]
floors:
  - name: L1
    spots:
      - {id: 1, category: compact}
      - {id: 2, category: LARGE}
    display_boards: [1]
  - name: L2
    spots:
      - {id: 3, category: electric}
logging:
  level: debug
"""


class TestSettings(unittest.TestCase):
    """Unit tests for settings parsing and validation"""

    def test_defaults(self):
        settings = settings_from_yaml("")
        self.assertEqual(settings.base_rate_per_hour, Decimal('50'))
        self.assertEqual(settings.ticket_number_floor, 1000)
        self.assertEqual(settings.fullness_policy, FullnessPolicy.PER_CLASS)
        self.assertEqual(settings.ticket_activation, TicketActivation.IMMEDIATE)
        self.assertEqual(settings.logging.level, "INFO")

    def test_full_layout(self):
        settings = settings_from_yaml(LAYOUT)
        self.assertEqual(settings.name, "downtown")
        self.assertEqual(settings.fullness_policy, FullnessPolicy.ALL_SPOTS)
        self.assertEqual(settings.floors[0].spots[1].category, SpotCategory.LARGE)
        self.assertEqual(settings.logging.level, "DEBUG")

    def test_duplicate_spot_ids_rejected(self):
        text = """
floors:
  - name: L1
    spots: [{id: 1, category: compact}]
  - name: L2
    spots: [{id: 1, category: large}]
"""
        with self.assertRaises(ConfigurationError):
            settings_from_yaml(text)

    def test_unknown_category_rejected(self):
        with self.assertRaises(ConfigurationError):
            settings_from_yaml("floors: [{name: L1, spots: [{id: 1, category: helipad}]}]")

    def test_unknown_key_rejected(self):
        with self.assertRaises(ConfigurationError):
            settings_from_yaml("base_rate: 10")

    def test_invalid_yaml(self):
        with self.assertRaises(ConfigurationError):
            settings_from_yaml("floors: [unclosed")

    def test_non_mapping_document(self):
        with self.assertRaises(ConfigurationError):
            settings_from_yaml("- just\n- a list\n")

    def test_bad_log_level(self):
        with self.assertRaises(ValueError):
            LoggingSettings(level="LOUD")

    def test_load_settings_from_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "facility.yaml")
            with open(path, "w", encoding="utf-8") as f:
                f.write(LAYOUT)
            self.assertEqual(load_settings(path).name, "downtown")
            with self.assertRaises(ConfigurationError):
                load_settings(os.path.join(tmp, "missing.yaml"))


class TestBuildFacility(unittest.TestCase):
    """Unit tests for turning settings into a facility"""

    def test_builds_layout(self):
        facility = build_facility(settings_from_yaml(LAYOUT))
        self.assertEqual(facility.name, "downtown")
        self.assertEqual([e.id for e in facility.entrances], ["north", "east"])
        self.assertEqual([e.id for e in facility.exits], ["south"])
        self.assertEqual([f.name for f in facility.registry.floors()], ["L1", "L2"])
        self.assertEqual(facility.registry.total_spots, 3)
        self.assertEqual(facility.pricing.base_rate_per_hour, Decimal('40'))
        self.assertEqual(facility.fullness_policy, FullnessPolicy.ALL_SPOTS)
        self.assertEqual(facility.ledger.activation, TicketActivation.DEFERRED)
        self.assertEqual(facility.ledger.last_ticket_number, 5000)
        self.assertEqual(len(facility.registry.get_floor("L1").display_boards), 1)

    def test_builds_empty_facility_from_defaults(self):
        facility = build_facility()
        self.assertEqual(facility.registry.total_spots, 0)
        self.assertIsInstance(FacilitySettings(), FacilitySettings)
        self.assertIsInstance(AppSettings().logging, LoggingSettings)


class TestSetupLogging(unittest.TestCase):

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    def test_file_and_stream_handlers(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = os.path.join(tmp, "logs", "parkflow.log")
            logger = setup_logging(LoggingSettings(level="WARNING", file=log_file))
            self.assertEqual(logger.name, "parkflow")
            root = logging.getLogger()
            self.assertEqual(root.level, logging.WARNING)
            self.assertEqual(len(root.handlers), 2)
            self.assertTrue(os.path.exists(os.path.dirname(log_file)))
            self.tearDown()


if __name__ == '__main__':
    unittest.main()
