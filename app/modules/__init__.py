"""Domain modules package."""

from app.modules.booking import models as booking_models  # noqa: F401
from app.modules.notifications import models as notifications_models  # noqa: F401
from app.modules.packages import models as packages_models  # noqa: F401
