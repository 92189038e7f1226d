"""Carebook - stateless caregiver booking backed by Google Calendar."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("carebook")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
