"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .entity_lock import EntityLock
from .local_entity_lock import LocalEntityLock
from .notification import NotificationGateway

__all__ = ['EntityLock', 'LocalEntityLock', 'NotificationGateway']
