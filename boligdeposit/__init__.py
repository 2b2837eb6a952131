"""BoligDeposit privacy and consent backend."""

__version__ = "1.0.0"
