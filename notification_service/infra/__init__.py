"""Infrastructure adapters (logging, database, messaging)."""
