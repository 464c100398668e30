# fooddispatch/__init__.py

from .models import (
    Coordinate,
    Customer,
    Restaurant,
    OrderItem,
    Driver,
    OrderStatus,
    DriverStatus,
    AssignmentStatus,
)
from .errors import (
    DispatchError,
    InvalidTransition,
    NoDriverAvailable,
    NoDriverReason,
    AlreadyBound,
    OrderNotFound,
    DriverNotFound,
)
from .lifecycle import OrderOperation, TRANSITIONS
from .order import Order
from .assignment import DeliveryAssignment
from .pool import DriverPool
from .strategies import AssignmentStrategy, NearestDriverStrategy, HighestRatedDriverStrategy
from .notifications import (
    EventKind,
    Event,
    EventNotifier,
    NullNotifier,
    LoggingNotifier,
    CallbackNotifier,
    ChannelNotifier,
)
from .dispatch import DispatchEngine
from .service import OrderService

__version__ = "1.0.0"

__all__ = [
    # Models
    "Coordinate",
    "Customer",
    "Restaurant",
    "OrderItem",
    "Driver",
    "OrderStatus",
    "DriverStatus",
    "AssignmentStatus",
    "Order",
    "DeliveryAssignment",
    # Errors
    "DispatchError",
    "InvalidTransition",
    "NoDriverAvailable",
    "NoDriverReason",
    "AlreadyBound",
    "OrderNotFound",
    "DriverNotFound",
    # Lifecycle
    "OrderOperation",
    "TRANSITIONS",
    # Core
    "DriverPool",
    "DispatchEngine",
    "OrderService",
    "AssignmentStrategy",
    "NearestDriverStrategy",
    "HighestRatedDriverStrategy",
    # Notifications
    "EventKind",
    "Event",
    "EventNotifier",
    "NullNotifier",
    "LoggingNotifier",
    "CallbackNotifier",
    "ChannelNotifier",
]
