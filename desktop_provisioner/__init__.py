"""Desktop host provisioner (single host, single run, best effort).

Core design goals:
- Declarative, ordered step plans
- Idempotent primitives (deploy, install, toggle, merge)
- Backups before any overwrite
- Explicit per-step failure policy
- Centralized logging
"""

__all__ = []
