"""Configuration modules for Messenger."""

from .auth import AuthSettings, get_auth_settings
from .deletion import DeletionSettings, get_deletion_settings

__all__ = [
    'AuthSettings',
    'get_auth_settings',
    'DeletionSettings',
    'get_deletion_settings',
]
