from .common import *  # noqa
from .auth import *  # noqa
from .catalog import *  # noqa
from .materials import *  # noqa
from .products import *  # noqa
from .sales import *  # noqa
from .production import *  # noqa
from .purchasing import *  # noqa
from .inventory import *  # noqa

# Platform event-bus table (transactional outbox)
from app.events.outbox import *  # noqa
