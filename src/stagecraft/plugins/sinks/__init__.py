"""Built-in destination executors."""
