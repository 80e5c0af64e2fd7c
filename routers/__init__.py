"""
API endpoints and request handling.
Can import from: services, models
Must NOT import from: repositories (call via services; wiring lives in dependencies.py)
"""

from . import assessments, certificates, progress

__all__ = [
    "assessments",
    "certificates",
    "progress",
]
