"""
Services package for the league bot.

Settings cache and the chat-platform gateway used by the operations layer.
"""

from .base import BaseService

__all__ = ['BaseService']
