from .analytics_service import AnalyticsService
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .maintenance_service import MaintenanceService
from .notification_service import NotificationService
from .review_service import ReviewService
from .user_service import UserService
from .vehicle_service import VehicleService

__all__ = [
    "AnalyticsService",
    "AvailabilityService",
    "BookingService",
    "MaintenanceService",
    "NotificationService",
    "ReviewService",
    "UserService",
    "VehicleService",
]
