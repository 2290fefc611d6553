"""Network transports for fetchpipe.

:class:`Transport` is the collaborator that performs the actual exchange;
:class:`HttpxTransport` is the built-in implementation.
"""

from fetchpipe.transport.base import Transport, TransportError
from fetchpipe.transport.httpx_transport import HttpxTransport

__all__ = ["HttpxTransport", "Transport", "TransportError"]
