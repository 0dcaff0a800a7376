"""
Exit Validation

Use Case: Let a vehicle out
1. Check the ticket has been paid
2. Close the ticket as VALIDATED, recording the exit panel used
3. Release the spot and clear the vehicle's active ticket
"""

from typing import Optional
import logging
import threading

from ..domain.exceptions import NotPaidError
from ..domain.models import Ticket, TicketStatus
from ..domain.aggregates import TicketLedger


class ExitValidator:
    """Gatekeeper for exit panels"""

    def __init__(self, ledger: TicketLedger, lock: Optional[threading.RLock] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._ledger = ledger
        self._lock = lock or threading.RLock()

    def validate(self, ticket: Ticket, exit_id: Optional[str] = None) -> Ticket:
        """
        Validate a paid ticket at an exit
        Raises: NotPaidError without touching the ticket or its spot
        """
        with self._lock:
            if ticket.status is not TicketStatus.PAID:
                self.logger.warning(
                    f"Exit refused for ticket {ticket.ticket_number}: status {ticket.status.value}"
                )
                raise NotPaidError(
                    f"Ticket {ticket.ticket_number} has not been paid (status {ticket.status.value})",
                    ticket.ticket_number, ticket.status
                )

            self._ledger.close(ticket, TicketStatus.VALIDATED, exit_id=exit_id)
            self.logger.info(
                f"Ticket {ticket.ticket_number} validated at exit {exit_id or 'unspecified'}"
            )
            return ticket
