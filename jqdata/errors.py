"""Error taxonomy for the JQData client.

Every failure surfaces to the immediate caller as a subclass of
``JqdataError``; nothing is retried or swallowed inside the client.
"""

from __future__ import annotations


class JqdataError(Exception):
    """Base class for all client errors."""

    pass


class TransportError(JqdataError):
    """Connection, timeout or protocol failure at the HTTP layer."""

    pass


class ServerError(JqdataError):
    """The service signalled failure in-band with the ``error`` sentinel."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DecodeError(JqdataError):
    """Response body did not match the command's declared wire format."""

    pass


class EncodeError(JqdataError):
    """Command fields could not be serialized into a request envelope."""

    pass


class NoCredentialError(JqdataError):
    """A credential is required but none is available."""

    pass
