"""taskstack - build and release automation built on ordered task collections."""

__version__ = "0.1.0"
