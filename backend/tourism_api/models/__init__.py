from tourism_api.models.user import User
from tourism_api.models.place import Place
from tourism_api.models.event import Event
from tourism_api.models.reservation import Reservation, RESERVATION_STATUSES

__all__ = ["User", "Place", "Event", "Reservation", "RESERVATION_STATUSES"]
