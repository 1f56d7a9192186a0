"""Random bytes service."""

from randgate.service.main import create_app

__all__ = ["create_app"]
