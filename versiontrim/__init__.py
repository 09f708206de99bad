"""Version Trimmer - batch-bounded cleanup of historical object versions."""

__version__ = "0.3.0"
