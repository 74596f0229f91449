from sqlmodel import SQLModel
from .user import User
from .specialist import Specialist
from .schedule import Schedule
from .appointment import Appointment
from .chat import Chat, ChatMessage, ChatUnread

__all__ = [
    "SQLModel",
    "User",
    "Specialist",
    "Schedule",
    "Appointment",
    "Chat",
    "ChatMessage",
    "ChatUnread",
]
