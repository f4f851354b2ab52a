"""VM status service for VMware Fusion."""

__version__ = "0.1.0"
