"""
Repository Pattern Implementation for the Parking Engine

Repositories give the aggregates a collection-like interface to their
entities. The engine keeps no durable state, so the only storage
implementation is in memory; the interface is what a persistent store would
have to provide.
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional, List, Dict
import logging

from ..domain.models import Ticket, TicketStatus

# Type variables for generic repositories
T = TypeVar('T')  # Entity type
ID = TypeVar('ID')  # ID type


# ============================================================================
# REPOSITORY INTERFACES
# ============================================================================

class Repository(ABC, Generic[T, ID]):
    """Base repository interface"""

    @abstractmethod
    def add(self, entity: T) -> T:
        """Add an entity to the repository"""
        pass

    @abstractmethod
    def get(self, id: ID) -> Optional[T]:
        """Get an entity by ID"""
        pass

    @abstractmethod
    def get_all(self, skip: int = 0, limit: Optional[int] = None) -> List[T]:
        """Get all entities, optionally paginated"""
        pass

    @abstractmethod
    def update(self, entity: T) -> T:
        pass

    @abstractmethod
    def delete(self, id: ID) -> bool:
        pass

    @abstractmethod
    def exists(self, id: ID) -> bool:
        pass

    @abstractmethod
    def count(self) -> int:
        pass


# ============================================================================
# IN-MEMORY REPOSITORIES
# ============================================================================

class InMemoryRepository(Repository[T, ID]):
    """In-memory repository keyed by the entity's id"""

    def __init__(self):
        self._storage: Dict[ID, T] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def add(self, entity: T) -> T:
        entity_id = getattr(entity, 'id')
        if entity_id in self._storage:
            raise KeyError(f"Entity {entity_id} already exists")

        self._storage[entity_id] = entity
        self._logger.debug(f"Added entity {entity_id}")
        return entity

    def get(self, id: ID) -> Optional[T]:
        return self._storage.get(id)

    def get_all(self, skip: int = 0, limit: Optional[int] = None) -> List[T]:
        items = list(self._storage.values())
        if limit is None:
            return items[skip:]
        return items[skip:skip + limit]

    def update(self, entity: T) -> T:
        entity_id = getattr(entity, 'id')
        if entity_id not in self._storage:
            raise KeyError(f"Entity {entity_id} not found")

        self._storage[entity_id] = entity
        self._logger.debug(f"Updated entity {entity_id}")
        return entity

    def delete(self, id: ID) -> bool:
        if id in self._storage:
            del self._storage[id]
            self._logger.debug(f"Deleted entity {id}")
            return True
        return False

    def exists(self, id: ID) -> bool:
        return id in self._storage

    def count(self) -> int:
        return len(self._storage)

    def clear(self):
        """Clear all data (for testing)"""
        self._storage.clear()


class InMemoryTicketRepository(InMemoryRepository[Ticket, int]):
    """In-memory repository for tickets, keyed by ticket number"""

    def find_by_license_plate(self, license_plate: str) -> List[Ticket]:
        """Every ticket a vehicle has held, oldest first"""
        return sorted(
            (t for t in self._storage.values() if t.license_plate == license_plate),
            key=lambda t: t.ticket_number
        )

    def find_by_status(self, status: TicketStatus) -> List[Ticket]:
        return sorted(
            (t for t in self._storage.values() if t.status == status),
            key=lambda t: t.ticket_number
        )
