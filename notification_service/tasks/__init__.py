"""Background jobs run inside the service process."""
