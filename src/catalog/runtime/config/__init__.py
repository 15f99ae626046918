"""Configuration models and loaders."""

from .config_data import ConfigData
from .config_template import load_templated_yaml

__all__ = ["ConfigData", "load_templated_yaml"]
