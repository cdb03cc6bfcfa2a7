"""
BaseSelector -- abstract base for read-only query classes.

Selectors accept a Session from the caller, perform read-only queries and
return DTOs or computed results.  They never add, flush, commit or delete.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Non-goals:
        - BaseSelector does NOT define any query methods; subclasses
          implement the movement and product queries.
    """

    def __init__(self, session: Session):
        self.session = session
