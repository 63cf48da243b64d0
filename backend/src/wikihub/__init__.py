"""wikihub - collaborative knowledge base backend."""

__version__ = "0.1.0"
