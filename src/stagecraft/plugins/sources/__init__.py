"""Built-in source executors."""
