"""
stackplan - Stack Selection and Tool Reconciliation Engine

Resolves a technology stack by walking a predicate-filtered decision
catalog, then plans the operations that reconcile a scaffolded project
with those choices.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - How questions are put to a human
    - How files are created or deleted
    - How dependencies are installed
    - Issue trackers, version control, CI

This package defines DECISIONS and PLANS only.

All execution happens in external collaborators.
The only durable write is the canonical configuration document.
"""

__version__ = "0.1.0"
