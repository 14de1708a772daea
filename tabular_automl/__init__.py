"""Schema-driven tabular preprocessing and random forest training."""

__version__ = "1.0.0"
