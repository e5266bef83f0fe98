#!/usr/bin/env python3
"""
Production deployment for the print-space layout engine.

Checks the host, builds the app in production mode and serves it with Waitress.
"""

import os
import sys
from pathlib import Path

from loguru import logger

DEFAULT_DRAFT_FOLDER = '/var/lib/printspace/drafts'


def production_overrides():
    """Settings taken from the process environment on top of settings_production.yaml"""
    overrides = {'DEBUG': False, 'TESTING': False}
    for key in ('LOG_FILE', 'LOG_LEVEL', 'DRAFT_FOLDER', 'SECRET_KEY', 'PRODUCT_CATALOG_FILE'):
        if os.environ.get(key):
            overrides[key] = os.environ[key]
    if os.environ.get('EXPORT_WORKERS'):
        overrides['EXPORT_WORKERS'] = int(os.environ['EXPORT_WORKERS'])
    return overrides


def create_production_app():
    """Create the Flask application with production settings."""
    os.environ['PRINTSPACE_ENV'] = 'production'

    from printspace import create_app
    return create_app('production', production_overrides())


def _check_catalog(catalog_file):
    from printspace.config import load_product_catalog
    from printspace.errors import ConfigurationError

    if not Path(catalog_file).exists():
        return f"Product catalog not found: {catalog_file}"
    try:
        load_product_catalog(catalog_file)
    except ConfigurationError as e:
        return f"Product catalog is invalid: {e.message}"
    return None


def _check_writable(folder: Path):
    try:
        folder.mkdir(parents=True, exist_ok=True)
        marker = folder / '.write_test'
        marker.write_text('ok')
        marker.unlink()
    except OSError:
        return f"Draft folder is not writable: {folder}"
    return None


def check_production_requirements():
    """Return a list of problems that would keep the server from running correctly."""
    problems = []

    if not os.environ.get('SECRET_KEY'):
        problems.append("Environment variable SECRET_KEY is required")

    catalog_file = os.environ.get('PRODUCT_CATALOG_FILE')
    if catalog_file:
        problems.append(_check_catalog(catalog_file))

    problems.append(_check_writable(Path(os.environ.get('DRAFT_FOLDER', DEFAULT_DRAFT_FOLDER))))

    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError) as e:
        problems.append(f"Ornate borders cannot be rendered: {e}")

    return [p for p in problems if p]


if __name__ == '__main__':
    problems = check_production_requirements()
    if problems:
        print("❌ Production requirements not met:")
        for problem in problems:
            print(f"  - {problem}")
        sys.exit(1)

    from waitress import serve

    app = create_production_app()

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', '8000'))
    threads = int(os.environ.get('THREADS', '4'))
    logger.info(f"Serving print-space engine on {host}:{port} ({threads} threads)")

    try:
        serve(
            app,
            host=host,
            port=port,
            threads=threads,
            channel_timeout=120,
            url_scheme='https' if os.environ.get('HTTPS', '').lower() == 'true' else 'http'
        )
    except KeyboardInterrupt:
        logger.info("Shutting down")
