"""
Allow running the plugin server as a Python module.

Usage:
    python -m resource_provider

This is equivalent to running:
    python run_server.py
"""

from run_server import main

if __name__ == "__main__":
    main()
