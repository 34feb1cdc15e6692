# ✅ import every model so Base.metadata knows all tables
from models.events import Event, Registration  # noqa: F401
from models.attendance import Attendance  # noqa: F401
from models.grades import Grade  # noqa: F401
from models.notifications import Notification  # noqa: F401
