"""
launchgate Shared Kernel
========================

Architecture:
- core: EventBus, configuration, errors, service bundle
- infrastructure: HTTP and storage adapters (backend, billing, credential file)
- domain: collaborator interfaces and their production implementations
"""

__version__ = "0.3.0"

__all__ = []
