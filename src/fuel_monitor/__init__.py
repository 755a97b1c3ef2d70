"""Fuel Monitor: daily fuel and power-runtime reconstruction for remote sites."""

try:
    from importlib.metadata import version as _pkg_version
    __version__ = _pkg_version("fuel-monitor")
except Exception:
    __version__ = "dev"
