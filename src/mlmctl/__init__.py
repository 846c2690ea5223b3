"""mlmctl — binary-tree membership registry for multi-level-marketing networks."""

__version__ = "0.3.0"
