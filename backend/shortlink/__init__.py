"""Short link service: code allocation, redirects and click analytics."""

__version__ = "1.0.0"
