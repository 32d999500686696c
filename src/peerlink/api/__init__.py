"""HTTP control surface."""

from peerlink.api.app import create_app, envelope, error_envelope

__all__ = ["create_app", "envelope", "error_envelope"]
