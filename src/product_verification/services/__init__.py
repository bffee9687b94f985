"""
Business services.
"""
