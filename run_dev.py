#!/usr/bin/env python3
"""
Print-space layout engine - Development Runner
Starts the JSON API with the reloader on
"""

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

os.environ.setdefault('FLASK_APP', 'printspace')
os.environ.setdefault('PRINTSPACE_ENV', 'development')

try:
    from printspace import create_app
    from printspace.borders import ALL_BORDER_DESIGNS
    from printspace.layouts import all_layouts
except ImportError as e:
    print(f"❌ Import error: {e}")
    print("Install the project first:  pip install -e .[test]")
    sys.exit(1)


def describe(app):
    """Print what the server is about to run with"""
    catalog = app.config.get('PRODUCT_CATALOG_FILE') or 'built-in mock catalog'
    rows = [
        ('Environment', app.config.get('PRINTSPACE_ENV')),
        ('Debug', app.config.get('DEBUG')),
        ('Log', f"{app.config.get('LOG_FILE')} ({app.config.get('LOG_LEVEL')})"),
        ('Drafts', app.config.get('DRAFT_FOLDER')),
        ('Products', catalog),
        ('Layouts', len(all_layouts())),
        ('Borders', len(ALL_BORDER_DESIGNS)),
    ]
    print("=" * 60)
    print("Print-space layout engine")
    print("=" * 60)
    for label, value in rows:
        print(f"{label:<12} {value}")
    if not Path('config/settings.yaml').exists():
        print("⚠️  config/settings.yaml not found, using built-in defaults")
    print("-" * 60)


def main():
    parser = argparse.ArgumentParser(description="Run the print-space development server")
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=5000)
    parser.add_argument('--no-reload', action='store_true', help='Disable the code reloader')
    args = parser.parse_args()

    app = create_app()
    describe(app)
    print(f"Health check: http://localhost:{args.port}/api/health  (Ctrl+C to stop)")

    app.run(
        host=args.host,
        port=args.port,
        debug=app.config.get('DEBUG', True),
        use_reloader=not args.no_reload,
        threaded=True
    )


if __name__ == '__main__':
    main()
