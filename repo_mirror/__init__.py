"""Mirror a GitHub account's owned and starred repositories to local disk."""

__version__ = "1.0.0"
