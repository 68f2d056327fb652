"""phpthrows - @throws documentation checker for PHP projects."""

__version__ = "0.1.0"
