"""FastAPI router modules."""

from . import comments  # noqa: F401
from . import customers  # noqa: F401
from . import files  # noqa: F401
from . import offers  # noqa: F401
from . import tags  # noqa: F401
