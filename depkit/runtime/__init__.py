"""
Runtime provisioning for DepKit.
"""

from depkit.runtime.base import RuntimeHandle, RuntimeInstaller
from depkit.runtime.system import SystemRuntimeInstaller, satisfies

__all__ = [
    "RuntimeHandle",
    "RuntimeInstaller",
    "SystemRuntimeInstaller",
    "satisfies",
]
