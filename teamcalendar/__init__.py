"""Team calendar backend: employees, appointments and calendar settings."""

__version__ = "1.0.0"
