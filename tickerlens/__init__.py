"""Live stock-symbol detection and annotation for HTML content trees."""

__version__ = "1.0.0"
