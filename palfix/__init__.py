"""palfix: undo PAL speedup in Matroska files without re-encoding video."""

__version__ = "0.1.0"
