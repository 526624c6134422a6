"""scd — a terminal file manager bridged to your interactive shell."""

__version__ = "0.3.0"
