"""
Hashtag timeline harvester and full-text search for Mastodon-compatible instances.
"""

__version__ = "0.1.0"
