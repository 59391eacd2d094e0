"""
Cheerboard: moderated catalog of cheerleader performers and fan-organized
support events, with map browsing and per-user favorites.
"""

__version__ = "1.0.0"
