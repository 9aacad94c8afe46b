"""Declarative cloud resource provider.

Reconciles declared resource state against a remote cloud API through
create, read, update, delete and import lifecycle operations.
"""

__version__ = "0.1.0"
