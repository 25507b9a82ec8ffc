"""
FastAPI Todo API package.

The application instance lives in ``todo_api.main``; import it from there so
that importing the package does not load settings or configure logging.
"""

__version__ = "0.1.0"
