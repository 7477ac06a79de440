"""Document stores implementing ports.DocumentStore."""
