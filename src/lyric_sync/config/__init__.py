"""
Configuration for the sync engine.
"""

from .config_loader import SyncConfig, load_config

__all__ = ["SyncConfig", "load_config"]
