"""Public API of the :mod:`tmlang` Turing Machine compiler."""

import logging

from . import constants as _constants
from . import runtime as _runtime
from .constants import *  # noqa: F401,F403
from .runtime import *  # noqa: F401,F403

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = []
__all__ += getattr(_constants, "__all__", [])
__all__ += getattr(_runtime, "__all__", [])
