"""
Shared client plumbing.

Modules:
- config: environment-driven settings
- models: pydantic wire models (Project, Secret, auth payloads)
- interfaces: presentation-layer protocols (notifier, confirmer, clipboard, navigator)
- transport: httpx transport that attaches and invalidates the session credential
- api: typed CipherSafe API client
"""

__all__ = [
    "api",
    "config",
    "interfaces",
    "models",
    "transport",
]
