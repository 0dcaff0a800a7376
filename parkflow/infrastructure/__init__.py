"""Infrastructure layer: event bus, repositories and configuration loading"""

from .messaging import EventBus, EventHandler, DisplayBoardRefresher, EventLog
from .repositories import Repository, InMemoryRepository, InMemoryTicketRepository
