"""API client module for fetchpipe.

Provides :class:`ApiClient`, which runs each call through an ordered
request interceptor chain, a :class:`~fetchpipe.transport.Transport`
exchange, a response interceptor chain, and a typed JSON decode.

Example::

    from fetchpipe.client import ApiClient
    from fetchpipe.transport import HttpxTransport

    async with ApiClient(HttpxTransport(), base_url="https://api.example.com") as client:
        users = await client.get("/users")
"""

from fetchpipe.client.api_client import ApiClient

__all__ = ["ApiClient"]
