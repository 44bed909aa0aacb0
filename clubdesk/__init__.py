"""
clubdesk - club attendance and payment lifecycle
"""

__version__ = "1.0.0"
