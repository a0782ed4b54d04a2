"""HTTP surface — JSON routes over the monitor engine."""

from .server import create_app
