"""
CipherSafe secrets manager client.

Packages:
- common: configuration, wire models, the authorizing transport and the API client
- session: credential store, encrypted session persistence, session guard, login/register
- dashboard: project/secret browser state machine
- cli: `ciphersafe` terminal front end
"""

__version__ = "0.1.0"
