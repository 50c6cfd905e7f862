"""Event-driven automation engine for form and page builders.

Subpackages:
    engine: Registries, placeholder compiler, content renderer, executors,
        actions and the trigger orchestrator
    service: Remote data service (HTTP proxy, read-only SQL, collection
        queries, workflow delegation) and its HTTP client
"""

__version__ = "0.1.0"
