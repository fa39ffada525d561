"""Invoice composition with trade-price derivation and payment tracking."""

__version__ = "0.1.0"
