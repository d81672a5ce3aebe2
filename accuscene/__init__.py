"""Records core for vehicle-accident investigations."""

__version__ = "0.1.0"
