"""Application use cases for the notification subsystem."""
