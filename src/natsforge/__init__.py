"""natsforge — NATS trust fabric and server configuration generator."""

__version__ = "0.3.0"
