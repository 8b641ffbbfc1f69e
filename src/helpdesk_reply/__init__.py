"""Customer reply workflow and notification fanout for a HESK help desk."""

__version__ = "0.1.0"
