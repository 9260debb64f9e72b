"""Camp Application and Management System: persistence and domain services."""

__version__ = "0.1.0"
