"""
API v1 request and response schemas.
"""
