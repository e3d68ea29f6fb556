"""mnemo: memory-augmented assistant over a directory of markdown memory files."""

__version__ = "0.1.0"
