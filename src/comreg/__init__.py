"""
comreg - build-time COM registration for WiX installers.

Harvests registry entries with heat.exe and merges them into the installer's
WiX tree instead of relying on self-registration.
"""

__version__ = "0.1.0"
