"""Shared pytest fixtures and helpers for catalog tests."""

from .core import *  # noqa: F401,F403
from .services import *  # noqa: F401,F403
from .api import *  # noqa: F401,F403
