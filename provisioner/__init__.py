"""Host provisioner — idempotent Ubuntu host bootstrap."""

__version__ = "0.1.0"
