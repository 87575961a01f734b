"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from lxguest.core.models import Action, Receipt, Distribution, InstallStep
"""

from lxguest.core.models.action import Action, Receipt
from lxguest.core.models.distro import (
    MARKER_TABLE,
    ROOT_GID,
    ROOT_UID,
    Distribution,
    InstallStep,
)

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # distro.py
    "Distribution",
    "InstallStep",
    "MARKER_TABLE",
    "ROOT_GID",
    "ROOT_UID",
]
