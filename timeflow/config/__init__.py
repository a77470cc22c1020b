"""
Configuration module for the time-tracking engine.
"""
from .settings import (
    TimeflowConfig,
    get_config,
    load_config,
    reload_config
)

__all__ = [
    'TimeflowConfig',
    'get_config',
    'load_config',
    'reload_config'
]
