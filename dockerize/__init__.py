"""
dockerize — detect a project's stack and generate its container artifacts.
"""

__version__ = "0.1.0"
