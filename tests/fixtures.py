"""
Shared test doubles and facility builders
"""

from datetime import datetime, timedelta
import threading

from parkflow.application.facility import ParkingFacility
from parkflow.domain.models import PaymentMethod, PaymentStatus, SpotCategory
from parkflow.domain.strategies import PaymentGateway


class FakeClock:
    """Manually advanced clock"""

    def __init__(self, start: datetime = datetime(2024, 1, 15, 8, 0, 0)):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self.now

    def advance(self, **kwargs) -> datetime:
        with self._lock:
            self.now = self.now + timedelta(**kwargs)
            return self.now


class DecliningGateway(PaymentGateway):
    """Declines the first `failures` transactions, then settles"""
    method = PaymentMethod.CREDIT_CARD

    def __init__(self, failures: int = 1):
        super().__init__()
        self.failures = failures
        self.calls = 0

    def initiate_transaction(self, payment):
        self.calls += 1
        if self.calls <= self.failures:
            return PaymentStatus.FAILED
        return PaymentStatus.COMPLETED


class BlockingGateway(PaymentGateway):
    """Holds every transaction until release() is called"""
    method = PaymentMethod.CREDIT_CARD

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self._release = threading.Event()

    def release(self):
        self._release.set()

    def initiate_transaction(self, payment):
        self.entered.set()
        self._release.wait(timeout=5)
        return PaymentStatus.COMPLETED


def build_small_facility(clock=None, **kwargs) -> ParkingFacility:
    """
    One floor, one entrance, one exit:
    spot 1 compact, spot 2 large, spot 3 motorcycle
    """
    facility = ParkingFacility(clock=clock or FakeClock(), **kwargs)
    facility.add_entrance("north")
    facility.add_exit("south")
    facility.add_floor("L1")
    facility.add_spot("L1", 1, SpotCategory.COMPACT)
    facility.add_spot("L1", 2, SpotCategory.LARGE)
    facility.add_spot("L1", 3, SpotCategory.MOTORCYCLE)
    return facility
