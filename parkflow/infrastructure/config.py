"""
Configuration and logging setup

A facility layout is described by a YAML document, validated with pydantic
and turned into a ready ParkingFacility by build_facility():

    name: downtown
    base_rate_per_hour: 50
    entrances: [north]
    exits: [south]
    floors:
      - name: L1
        spots:
          - {id: 1, category: compact}
          - {id: 2, category: large}
        display_boards: [1]
    logging:
      level: INFO
      file: logs/parkflow.log
"""

from typing import List, Optional, Union
from decimal import Decimal
from pathlib import Path
import logging
import os
import sys

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.exceptions import ConfigurationError
from ..domain.models import SpotCategory, FullnessPolicy, TicketActivation
from ..application.facility import ParkingFacility

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


# ============================================================================
# SETTINGS MODELS
# ============================================================================

class SpotSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    id: int = Field(strict=True, description="Facility-wide unique spot id")
    category: SpotCategory

    @field_validator('category', mode='before')
    @classmethod
    def parse_category(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class FloorSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=1)
    spots: List[SpotSettings] = Field(default_factory=list)
    display_boards: List[int] = Field(default_factory=list)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    level: str = "INFO"
    format: str = LOG_FORMAT
    file: Optional[str] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class FacilitySettings(BaseModel):
    """Layout and business rules of one facility"""
    model_config = ConfigDict(extra='forbid')

    name: str = "parkflow"
    base_rate_per_hour: Decimal = Field(default=Decimal('50'), ge=0)
    ticket_number_floor: int = Field(default=1000, ge=0)
    fullness_policy: FullnessPolicy = FullnessPolicy.PER_CLASS
    ticket_activation: TicketActivation = TicketActivation.IMMEDIATE
    entrances: List[str] = Field(default_factory=list)
    exits: List[str] = Field(default_factory=list)
    floors: List[FloorSettings] = Field(default_factory=list)

    @model_validator(mode='after')
    def check_unique_ids(self) -> 'FacilitySettings':
        floor_names = [floor.name for floor in self.floors]
        if len(floor_names) != len(set(floor_names)):
            raise ValueError("Floor names must be unique")

        spot_ids = [spot.id for floor in self.floors for spot in floor.spots]
        if len(spot_ids) != len(set(spot_ids)):
            raise ValueError("Spot ids must be unique across the facility")

        for label, ids in (("Entrance", self.entrances), ("Exit", self.exits)):
            if len(ids) != len(set(ids)):
                raise ValueError(f"{label} ids must be unique")
        return self


class AppSettings(FacilitySettings):
    """Facility settings plus process-wide logging"""
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ============================================================================
# LOADING
# ============================================================================

def settings_from_yaml(text: str) -> AppSettings:
    """Parse and validate a YAML document; an empty document yields defaults"""
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping")
    try:
        return AppSettings.model_validate(data)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def load_settings(path: Union[str, Path]) -> AppSettings:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    return settings_from_yaml(path.read_text(encoding='utf-8'))


def build_facility(settings: Optional[FacilitySettings] = None, **kwargs) -> ParkingFacility:
    """
    Assemble a facility from settings
    Extra keyword arguments (clock, gateways, event_bus) go to ParkingFacility.
    """
    settings = settings or FacilitySettings()
    facility = ParkingFacility(
        name=settings.name,
        base_rate_per_hour=settings.base_rate_per_hour,
        ticket_number_floor=settings.ticket_number_floor,
        fullness_policy=settings.fullness_policy,
        activation=settings.ticket_activation,
        **kwargs
    )

    for entrance_id in settings.entrances:
        facility.add_entrance(entrance_id)
    for exit_id in settings.exits:
        facility.add_exit(exit_id)

    for floor in settings.floors:
        facility.add_floor(floor.name)
        for spot in floor.spots:
            facility.add_spot(floor.name, spot.id, spot.category)
        for board_id in floor.display_boards:
            facility.add_display_board(floor.name, board_id)

    facility.logger.info(
        f"Built facility {settings.name}: {len(settings.floors)} floors, "
        f"{facility.registry.total_spots} spots"
    )
    return facility


def setup_logging(settings: Optional[LoggingSettings] = None) -> logging.Logger:
    """Setup application logging configuration"""
    settings = settings or LoggingSettings()
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if settings.file:
        log_dir = os.path.dirname(settings.file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.insert(0, logging.FileHandler(settings.file))

    logging.basicConfig(
        level=getattr(logging, settings.level),
        format=settings.format,
        handlers=handlers,
        force=True
    )
    return logging.getLogger("parkflow")
