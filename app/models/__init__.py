# app/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from app.models.user import User  # noqa: F401
from app.models.business import Business  # noqa: F401
from app.models.business_hours import BusinessHours  # noqa: F401

from app.models.deal import Deal  # noqa: F401
from app.models.deal_approval import DealApproval  # noqa: F401
from app.models.deal_event import DealEvent  # noqa: F401

from app.models.user_favorite import UserFavorite  # noqa: F401
from app.models.deal_redemption import DealRedemption  # noqa: F401
from app.models.redemption_rating import RedemptionRating  # noqa: F401

from app.models.notification import Notification, NotificationPreferences  # noqa: F401
