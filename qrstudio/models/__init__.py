"""Models package — import all models so metadata.create_all can discover them."""

from qrstudio.models.profile import Profile
from qrstudio.models.activity_log import ActivityLog
from qrstudio.models.qr_code import QRCode, QRType
from qrstudio.models.refresh_token import RefreshToken
from qrstudio.models.system_setting import FeatureFlag, SystemSetting

__all__ = [
    "Profile", "ActivityLog", "QRCode", "QRType",
    "RefreshToken", "FeatureFlag", "SystemSetting",
]
