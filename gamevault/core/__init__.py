"""Infrastructure layer: config, logging, database, events, security, validation."""
