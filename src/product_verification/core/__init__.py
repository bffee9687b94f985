"""
Core application utilities.
"""
