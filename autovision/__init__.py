"""
Autovision dealership backend.

Domain layer: credentials, tokens, users, vehicle approval workflow,
activity trail and the API session client. The HTTP layer lives in
autovision_web.
"""

__version__ = "1.0.0"
