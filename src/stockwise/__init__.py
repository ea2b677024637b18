"""stockwise: multi-provider AI investment advice pipeline."""

__version__ = "0.1.0"
