"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~fetchpipe.exceptions.FetchpipeError` subclass.
Shell wrappers can inspect the exit code to tell a rejected request from
an unreachable host without parsing stderr.

Example::

    $ fetchpipe request GET https://api.example.com/missing
    $ echo $?
    3   # EXIT_HTTP_ERROR -- the server answered with a non-2xx status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_HTTP_ERROR = 3
"""A response was received but its status was outside the 2xx range."""

EXIT_NETWORK_ERROR = 6
"""No response was obtained (DNS failure, connection refused, TLS handshake)."""

EXIT_UNEXPECTED_ERROR = 7
"""The pipeline failed for another reason (e.g. the body did not decode)."""
