"""
Console output for testreset.
"""

from .console import ConsoleUI

__all__ = ['ConsoleUI']
