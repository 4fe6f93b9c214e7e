# -*- coding: utf-8 -*
"""Formally declared classes with multiple inheritance, and generic functions with multiple dispatch.

In the spirit of S4 and CLOS, for Python. See ``dir(formality)`` and submodule
docstrings for more; `formality.runtime` is a good place to start.
"""

__version__ = '0.1.0'

from .bridge import *  # noqa: F401, F403
from .classes import *  # noqa: F401, F403
from .dispatch import *  # noqa: F401, F403
from .errors import *  # noqa: F401, F403
from .generics import *  # noqa: F401, F403
from .instances import *  # noqa: F401, F403
from .resolver import *  # noqa: F401, F403
from .runtime import *  # noqa: F401, F403
