"""Chat bot control plane: agent sessions, JSON envelopes, API bodies and a WSGI bot API."""

__version__ = "0.1.0"