__all__ = [
    "__version__",
    "version",
]

version = __version__ = "0.1.0"
