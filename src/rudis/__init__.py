"""rudis - terminal browser for the key space of Redis servers."""

__version__ = "0.1.0"
