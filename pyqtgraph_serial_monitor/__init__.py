"""Live plotting of comma-separated numeric lines read from a serial port."""

__version__ = "0.1.0"
