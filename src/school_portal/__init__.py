"""School Portal identity provisioning and authentication service."""

__version__ = "1.0.0"
