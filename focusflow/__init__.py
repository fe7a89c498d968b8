"""FocusFlow - tasks, Pomodoro focus timer, brain dump and progress tracking"""

__version__ = "1.0.0"
