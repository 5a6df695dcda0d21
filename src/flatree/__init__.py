"""flatree - build parent-pointer forests from flat, self-referencing records."""

__version__ = "0.1.0"
