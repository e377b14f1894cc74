"""certcli: create CAs, CSRs and signed certificates from the command line."""

__version__ = "0.1.0"
