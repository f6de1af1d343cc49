"""QR Studio backend: QR code management, user directory, bulk import and analytics."""

__version__ = "0.1.0"
