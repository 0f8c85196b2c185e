from .user import User
from .cause import Cause
from .donation import Donation
from .payment_event import PaymentEvent
from .news import NewsPost
from .visitation import Visitation
from .gallery import GalleryImage
from .setting import SettingOverride
