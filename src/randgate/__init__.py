"""
randgate: authenticated random bytes over HTTP.

Serves CSPRNG output to callers holding a pre-shared header value and an
HMAC-SHA384 key, and answers everything else with one fixed response.
"""

__version__ = "1.0.0"
