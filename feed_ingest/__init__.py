"""Poll publisher RSS/Atom feeds, persist normalised posts and signal new content."""

__version__ = "0.1.0"
