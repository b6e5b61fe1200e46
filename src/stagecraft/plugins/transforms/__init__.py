"""Built-in transform executors."""
