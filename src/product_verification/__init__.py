"""
QR-based product verification with bounded scan budgets.
"""

__version__ = "1.0.0"
