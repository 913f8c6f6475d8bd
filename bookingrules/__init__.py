"""
bookingrules - Interval algebra and pricing rules for resource reservations.
"""

__version__ = "0.1.0"
