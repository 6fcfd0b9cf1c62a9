"""State/store layer.

This package is the single source of truth for how state published by the
device is merged into one consistent, versioned snapshot.
"""
