"""upwatch — single-node uptime and bandwidth monitor."""

__version__ = "0.1.0"
