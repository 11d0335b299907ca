"""Local-first outline notes: block tree store, Markdown codec and vault sync."""

__version__ = "0.1.0"
