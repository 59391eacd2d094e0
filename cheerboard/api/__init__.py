"""
API routers for Cheerboard.
"""
