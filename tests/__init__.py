"""
Test suite for the print-space layout engine.

This package contains unit tests for the geometry, layout, editing,
preflight, border and export modules plus API tests for the Flask app.
"""

import sys
from pathlib import Path

# Add the project root to the Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
