"""
Session Module for Invoice Composer.

Editing session state:
    - Clock / SystemClock: time source and timers
    - AutoSaveController: debounced session snapshots
    - InvoiceEditor: the collaborator-facing editing facade

Author: Invoice Composer Team
"""

from .clock import Clock, SystemClock, TimerHandle
from .autosave import AutoSaveController, AutoSaveStatus, describe_last_saved
from .editor import InvoiceEditor

__all__ = [
    'Clock',
    'SystemClock',
    'TimerHandle',
    'AutoSaveController',
    'AutoSaveStatus',
    'describe_last_saved',
    'InvoiceEditor',
]
