"""Event mesh building blocks: configuration, logging with rolling files, TCP protocol types, naming and a webhook receiver."""

__version__ = "0.1.0"