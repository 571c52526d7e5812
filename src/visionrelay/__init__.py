"""Multi-provider vision client with ordered failover."""

__version__ = "0.1.0"
