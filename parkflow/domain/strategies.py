"""
Strategy Pattern Implementation for the Parking Engine

Key Strategies:
1. Parking Allocation - which free spot an arriving vehicle gets
2. Pricing - how a stay's duration turns into a fee
3. Payment Gateways - how a payment method settles a transaction

Strategies are selected when the facility is assembled and can be swapped
without touching the aggregates.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Union
from decimal import Decimal, ROUND_HALF_UP
import logging

from .models import (
    Spot, Payment, VehicleClass, SpotCategory, PaymentMethod, PaymentStatus
)
from .aggregates import SpotRegistry


# Eligible categories per vehicle class, most preferred first
COMPATIBILITY: Dict[VehicleClass, List[SpotCategory]] = {
    VehicleClass.MOTORCYCLE: [
        SpotCategory.MOTORCYCLE, SpotCategory.COMPACT,
        SpotCategory.LARGE, SpotCategory.HANDICAPPED,
    ],
    VehicleClass.CAR: [SpotCategory.COMPACT, SpotCategory.LARGE, SpotCategory.HANDICAPPED],
    VehicleClass.VAN: [SpotCategory.COMPACT, SpotCategory.LARGE, SpotCategory.HANDICAPPED],
    VehicleClass.TRUCK: [SpotCategory.LARGE],
}

CENTS = Decimal('0.01')
MINIMUM_BILLABLE_HOURS = Decimal('0.25')
ADDITIONAL_HOUR_FACTOR = Decimal('0.75')


# ============================================================================
# STRATEGY INTERFACES
# ============================================================================

class ParkingStrategy(ABC):
    """
    Abstract base class for parking strategies
    Defines the interface for spot allocation algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def find_spot(
        self,
        vehicle_class: VehicleClass,
        prefer_electric: bool = False
    ) -> Optional[Spot]:
        """
        Find a free spot for the given vehicle class without reserving it
        Returns: Spot if available, None when the lot is full for the class
        """
        pass

    def get_strategy_name(self) -> str:
        return self.__class__.__name__.replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Strategy"


class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    Defines the interface for fee calculation algorithms
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def calculate_parking_fee(self, duration_hours: float) -> Decimal:
        """
        Calculate the fee for a stay of the given length
        Returns: Fee rounded to cents
        """
        pass


class PaymentGateway(ABC):
    """
    Abstract base class for payment gateways
    One implementation per payment method; a call blocks until settled
    """

    method: PaymentMethod

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def initiate_transaction(self, payment: Payment) -> PaymentStatus:
        """
        Attempt to settle the payment
        Returns: COMPLETED or FAILED
        """
        pass


# ============================================================================
# PARKING ALLOCATION
# ============================================================================

class SpotMatcher(ParkingStrategy):
    """
    Floor-first allocation

    Floors are scanned in configuration order. On each floor the first
    category of the vehicle's preference list that has a free spot wins and
    its lowest-numbered free spot is returned. Electric spots are only
    offered to vehicles that ask for one, and never to trucks.
    """

    def __init__(self, registry: SpotRegistry):
        super().__init__()
        self._registry = registry

    def categories_for(
        self,
        vehicle_class: VehicleClass,
        prefer_electric: bool = False
    ) -> List[SpotCategory]:
        categories = list(COMPATIBILITY[vehicle_class])
        if prefer_electric and vehicle_class is not VehicleClass.TRUCK:
            categories.insert(0, SpotCategory.ELECTRIC)
        return categories

    def find_spot(
        self,
        vehicle_class: VehicleClass,
        prefer_electric: bool = False
    ) -> Optional[Spot]:
        categories = self.categories_for(vehicle_class, prefer_electric)

        for floor in self._registry.floors():
            for category in categories:
                spot = next(self._registry.free_spots_of_category(floor.name, category), None)
                if spot is not None:
                    self.logger.debug(
                        f"Matched {vehicle_class} to {category} spot {spot.id} on floor {floor.name}"
                    )
                    return spot

        self.logger.debug(f"No free spot for {vehicle_class}")
        return None

    def can_serve(self, vehicle_class: VehicleClass, prefer_electric: bool = False) -> bool:
        return self.find_spot(vehicle_class, prefer_electric) is not None


# ============================================================================
# PRICING
# ============================================================================

def calculate_fee(duration_hours: Union[float, int, Decimal],
                  base_rate_per_hour: Union[float, int, Decimal]) -> Decimal:
    """
    Tiered hourly fee

    The first hour (or part of it) is billed at the base rate and every
    further hour at 75% of it. Stays shorter than a quarter hour are billed
    as a quarter hour. The result is rounded half-up to cents.

    >>> calculate_fee(2, 50)
    Decimal('87.50')
    """
    duration = Decimal(str(duration_hours))
    base = Decimal(str(base_rate_per_hour))
    if duration < 0:
        raise ValueError(f"Duration cannot be negative: {duration_hours}")
    if base < 0:
        raise ValueError(f"Base rate cannot be negative: {base_rate_per_hour}")

    billable = max(duration, MINIMUM_BILLABLE_HOURS)
    first_hour = min(billable, Decimal(1)) * base
    additional = max(billable - 1, Decimal(0)) * ADDITIONAL_HOUR_FACTOR * base
    return (first_hour + additional).quantize(CENTS, rounding=ROUND_HALF_UP)


class TieredHourlyPricingStrategy(PricingStrategy):
    """
    Tiered hourly pricing
    - Full base rate for the first hour
    - 75% of the base rate for every additional hour
    - Quarter-hour minimum charge
    """

    def __init__(self, base_rate_per_hour: Union[float, int, Decimal] = Decimal('50')):
        super().__init__()
        self.base_rate_per_hour = base_rate_per_hour

    @property
    def base_rate_per_hour(self) -> Decimal:
        return self._base_rate

    @base_rate_per_hour.setter
    def base_rate_per_hour(self, value: Union[float, int, Decimal]) -> None:
        rate = Decimal(str(value))
        if rate < 0:
            raise ValueError(f"Base rate cannot be negative: {value}")
        self._base_rate = rate

    def calculate_parking_fee(self, duration_hours: float) -> Decimal:
        fee = calculate_fee(duration_hours, self._base_rate)
        self.logger.debug(f"Fee for {duration_hours:.2f}h at {self._base_rate}/h: {fee}")
        return fee


# ============================================================================
# PAYMENT GATEWAYS
# ============================================================================

class CashGateway(PaymentGateway):
    """Cash accepted by an attendant or pay station; always settles"""
    method = PaymentMethod.CASH

    def initiate_transaction(self, payment: Payment) -> PaymentStatus:
        self.logger.info(f"Cash payment of {payment.amount} accepted")
        return PaymentStatus.COMPLETED


class CreditCardGateway(PaymentGateway):
    """Simulated card processor; always settles"""
    method = PaymentMethod.CREDIT_CARD

    def initiate_transaction(self, payment: Payment) -> PaymentStatus:
        self.logger.info(f"Card payment of {payment.amount} authorized")
        return PaymentStatus.COMPLETED


def default_gateways() -> Dict[PaymentMethod, PaymentGateway]:
    return {
        PaymentMethod.CASH: CashGateway(),
        PaymentMethod.CREDIT_CARD: CreditCardGateway(),
    }
