"""Local bridge that installs modpacks on behalf of a web application."""

__version__ = "1.1.0"
