"""
Core application components
"""
from foodshare.core.cli import register_cli_commands
from foodshare.core.context_processors import register_context_processors
from foodshare.core.error_handlers import register_error_handlers
from foodshare.core.logging_config import setup_logging

__all__ = [
    'register_cli_commands',
    'register_context_processors',
    'register_error_handlers',
    'setup_logging'
]

