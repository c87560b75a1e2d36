"""OpenWebNet - a client library for BTicino/Legrand OpenWebNet gateways."""

__version__ = "0.2.1"
VERSION = __version__
