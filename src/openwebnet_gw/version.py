"""OpenWebNet - a client library for BTicino/Legrand OpenWebNet gateways."""

from openwebnet_tx.version import VERSION, __version__  # noqa: F401
