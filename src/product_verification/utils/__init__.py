"""
Pure helpers.
"""
