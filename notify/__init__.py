"""
Notify Module
Launch progress notifications
"""

from .telegram import TelegramNotifier

__all__ = ['TelegramNotifier']
