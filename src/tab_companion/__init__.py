"""
Tab Companion - hybrid clustering of open browser tabs.
"""

__version__ = "0.1.0"
