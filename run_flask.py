"""
DEVELOPMENT ENTRY POINT

This is the canonical entry point for local development.
For production deployments, use: wsgi.py

Runs Flask development server with debug mode enabled.
"""
import os
import sys

# Add the src directory to the Python path
sys.path.insert(0, os.path.abspath('./src'))

from citation_engine.config import Config
from citation_engine.utils.logging_setup import setup_logging
from citation_engine.web import create_app

app = create_app()

if __name__ == "__main__":
    setup_logging(Config.LOG_DIR, Config.LOG_LEVEL)
    app.run(debug=True)
