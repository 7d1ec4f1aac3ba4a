"""AJaaS scheduling and secure persistence engine."""

__version__ = "0.1.0"
