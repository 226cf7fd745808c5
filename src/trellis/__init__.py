"""
Trellis - declarative request handlers for async Python services.

Endpoints are declared once as builder chains and finalized into frozen
descriptors; a staged pipeline runs them per request.
"""

__version__ = "0.1.0"

from trellis.core import *  # noqa
from trellis.framework import *  # noqa
