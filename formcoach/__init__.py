"""Rep counting and movement-quality scoring from pose landmark streams."""

__version__ = "0.1.0"
