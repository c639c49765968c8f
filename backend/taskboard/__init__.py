"""Task list engine: fields, tasks, views, filtering, sorting and projection."""

__version__ = "1.0.0"
