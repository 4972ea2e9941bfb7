"""cfls package root."""

from cfls.exceptions import NeverThrown
from cfls.invariants import never

__all__ = ["__version__", "NeverThrown", "never"]

__version__ = "0.1.0"
