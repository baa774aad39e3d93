"""Core module - error taxonomy, logging setup and the service container."""
