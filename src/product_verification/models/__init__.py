"""
ORM models and enums.
"""
