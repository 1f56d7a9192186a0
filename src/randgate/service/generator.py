"""CSPRNG draws."""

import secrets


def generate(byte_length: int) -> bytes:
    """Draw fresh random bytes from the OS CSPRNG."""
    return secrets.token_bytes(byte_length)
