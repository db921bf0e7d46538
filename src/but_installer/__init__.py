"""but-installer - installs, upgrades and removes the GitButler CLI on Linux."""

__version__ = "0.1.0"
