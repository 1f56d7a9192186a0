"""Published disclosure text returned on every rejected request."""

from __future__ import annotations

from pathlib import Path

from randgate.common.errors import ConfigurationError

DISCLOSURE_TEXT = """\
randgate - authenticated random bytes

If you are reading this, one of the following is true:
  * the request used the wrong method, path or parameters
  * the request was not properly authenticated
  * you wanted to read what this service does

What this service does, in full:

  1. Accept only GET <route>?byteLength=N with 1 <= N <= 1024.
  2. Require the pre-shared header and the MAC header.
  3. Build the message  <path>~byteLength=<N>~<headerName>=<headerValue>
     and verify the base64 HMAC-SHA384 of it against the shared key.
  4. On success, draw N bytes from the operating system CSPRNG and return
     them as comma-separated decimal values.

Random bytes are never logged, stored or reused. Request contents, header
values and keys are never logged. Every failure, whatever the cause,
returns this same text.
"""


def load_disclosure(path: str | None) -> str:
    """
    Load the failure body once at startup.

    Args:
        path: Optional file overriding the built-in text

    Returns:
        Disclosure text

    Raises:
        ConfigurationError: If the file cannot be read
    """
    if not path:
        return DISCLOSURE_TEXT

    try:
        return Path(path).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read disclosure file: {path}") from e
