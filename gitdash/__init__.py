"""GitDash: authenticated proxy between the dashboard client and GitHub."""

__version__ = "0.1.0"
