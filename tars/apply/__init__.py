"""Execute a reviewed diff plan against a project."""

from tars.apply.engine import apply_operations

__all__ = ["apply_operations"]
