from .db import db
from .user import User, ROLES
from .audit_log import AuditLog
from .session import Session
from .room import Room, ROOM_TYPES
from .class_schedule import ClassSchedule, WEEKDAYS
from .reservation import Reservation, RESERVATION_STATUSES, ACTIVE_STATUSES
from .notification import Notification
