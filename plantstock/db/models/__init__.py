from .common import *  # noqa
from .auth import *  # noqa
from .iam_tokens import *  # noqa
from .inventory import *  # noqa
from .production import *  # noqa
from .security_audit import *  # noqa
from .system import *  # noqa
