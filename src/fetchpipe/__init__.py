"""fetchpipe -- a typed async API client built on interceptor chains.

Each call runs through an ordered request interceptor chain (default
headers, bearer token), a single transport exchange, an ordered response
interceptor chain (unauthorized signal, status check), and a typed JSON
decode. Failures are classified into exactly one of
:class:`~fetchpipe.exceptions.NetworkError`,
:class:`~fetchpipe.exceptions.HttpError` or
:class:`~fetchpipe.exceptions.UnexpectedError`. Results can be memoized
per key in a :class:`~fetchpipe.cache.ResultCache`.

Typical use::

    async with ApiClient(HttpxTransport(), base_url="https://api.example.com") as client:
        users = await client.get("/users", decode_as=list[User])

Modules:
    app: Typer application and CLI entry point.
    client: The :class:`ApiClient` orchestrator.
    interceptors: Request/response interceptor contracts and chains.
    transport: The network collaborator and its httpx implementation.
    cache: In-memory result memoization.
    boundary: Top-level catch-and-report helpers.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and profile management.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
