"""Example host: a command-line counter persisted with the `persist` plugin."""
