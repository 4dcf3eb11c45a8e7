"""
progress-engine

Streak tracking and achievement unlocking for task-completion events.
"""

__version__ = "0.1.0"
