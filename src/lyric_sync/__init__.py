"""
Incremental sync of approved moderation-queue entries into versioned,
integrity-hashed delta artifacts for offline clients.
"""

__version__ = "1.0.0"
