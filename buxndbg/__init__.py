"""Debug server state, message protocol and viewer logic for the buxn virtual machine."""

__version__ = "0.1.0"