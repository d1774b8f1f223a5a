"""
The kitbase_flags module contains the most common top-level entry points for the SDK.

Use :class:`LocalFlagsClient` to evaluate flags in-process against a synchronized configuration,
or :class:`FlagsClient` to have every evaluation done by the Kitbase service.
"""

from kitbase_flags.version import VERSION

from .client import *
from .config import *
from .errors import *
from .evaluation import *
from .interfaces import *
from .remote_client import *

__version__ = VERSION
