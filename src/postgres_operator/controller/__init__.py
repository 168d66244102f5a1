"""Work queue and worker pool driving the reconcile engine."""

from .manager import ControllerManager, get_manager, set_manager
from .queue import ReconcileQueue

__all__ = ["ControllerManager", "ReconcileQueue", "get_manager", "set_manager"]
