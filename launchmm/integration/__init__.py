"""Imperative shell: configuration, the reference pool manager and the trade hook."""

from .config import AdminConfig, HookConfig, config_from_mapping, load_config
from .hook import LaunchHook
from .pool_manager import MemoryPoolManager
