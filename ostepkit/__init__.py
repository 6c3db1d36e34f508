"""Operating-system teaching tools: web server and client, text utilities, and a file-system model."""

__version__ = "0.1.0"