"""Built-in plugins registered by the Host at startup."""
