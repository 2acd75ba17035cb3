from .user import User
from .hospital import Hospital
from .appointment import Appointment

__all__ = ["User", "Hospital", "Appointment"]
