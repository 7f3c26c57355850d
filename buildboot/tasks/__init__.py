"""Built-in tasks, registered by TaskRegistry.from_settings."""
