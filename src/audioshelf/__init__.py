# ABOUTME: Audioshelf, a CLI-first audiobook catalog.
# ABOUTME: Scans audiobook folders, reconciles metadata, and serves rated/grouped views.

__version__ = "0.1.0"
