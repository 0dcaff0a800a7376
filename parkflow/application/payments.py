"""
Payment Processing

Use Case: Pay for a ticket
1. Check the ticket is IN_USE and not already being paid
2. Compute the fee for the stay so far
3. Settle it through the gateway for the chosen payment method
4. On success record the payment on the ticket (PAID); on failure leave the
   ticket payable and report PaymentFailedError

The gateway call blocks and runs outside the facility lock. While it runs,
the ticket carries an in-flight marker that turns away a second attempt.
"""

from typing import Dict, Optional
from datetime import datetime
import logging
import threading

from ..domain.exceptions import (
    ConfigurationError, InvalidTicketStateError, PaymentFailedError
)
from ..domain.models import (
    Ticket, Payment, PaymentMethod, PaymentStatus, TicketStatus, TimeRange
)
from ..domain.aggregates import TicketLedger
from ..domain.strategies import PricingStrategy, PaymentGateway, default_gateways


class PaymentProcessor:
    """Computes fees and drives payment gateways for tickets"""

    def __init__(
        self,
        ledger: TicketLedger,
        pricing: PricingStrategy,
        gateways: Optional[Dict[PaymentMethod, PaymentGateway]] = None,
        lock: Optional[threading.RLock] = None
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._ledger = ledger
        self.pricing = pricing
        self._gateways = gateways if gateways is not None else default_gateways()
        self._lock = lock or threading.RLock()

    def register_gateway(self, method: PaymentMethod, gateway: PaymentGateway) -> None:
        self._gateways[method] = gateway
        self.logger.info(f"Registered {gateway.__class__.__name__} for {method.value}")

    def quote(self, ticket: Ticket, now: datetime) -> Payment:
        """Build a pending payment for the stay up to now without settling it"""
        stay = TimeRange(ticket.entry_time, max(now, ticket.entry_time))
        amount = self.pricing.calculate_parking_fee(stay.duration_hours)
        return Payment(amount=amount, method=PaymentMethod.CASH)

    def pay(self, ticket: Ticket, method: PaymentMethod, now: datetime) -> Payment:
        """
        Settle the fee for a ticket

        Returns: the completed Payment
        Raises: InvalidTicketStateError, PaymentFailedError, ConfigurationError
        """
        gateway = self._gateways.get(method)
        if gateway is None:
            raise ConfigurationError(f"No payment gateway configured for {method.value}")

        with self._lock:
            if ticket.status is not TicketStatus.IN_USE:
                self.logger.warning(
                    f"Rejected payment for ticket {ticket.ticket_number} in status {ticket.status.value}"
                )
                raise InvalidTicketStateError(
                    f"Ticket {ticket.ticket_number} is {ticket.status.value}, expected in_use",
                    ticket.ticket_number, ticket.status
                )
            if ticket.payment_in_progress:
                self.logger.warning(f"Payment for ticket {ticket.ticket_number} already in progress")
                raise InvalidTicketStateError(
                    f"Payment for ticket {ticket.ticket_number} already in progress",
                    ticket.ticket_number, ticket.status
                )

            payment = self.quote(ticket, now)
            payment.method = method
            ticket.payment_in_progress = True

        self.logger.info(
            f"Charging {payment.amount} for ticket {ticket.ticket_number} via {method.value}"
        )
        try:
            status = gateway.initiate_transaction(payment)
        except Exception:
            with self._lock:
                ticket.payment_in_progress = False
            raise

        # Marker is cleared in the same critical section that records the
        # outcome so no second attempt can slip in between.
        with self._lock:
            ticket.payment_in_progress = False
            if status is not PaymentStatus.COMPLETED:
                payment.mark_failed()
                self.logger.error(
                    f"Payment {payment.payment_id} for ticket {ticket.ticket_number} failed"
                )
                raise PaymentFailedError(ticket.ticket_number, payment)

            payment.mark_completed(now)
            self._ledger.record_payment(ticket, payment, now)
            return payment
