"""
Configuration management for the print-space layout engine
Loads settings from YAML files with environment variable overrides
"""

import os
import yaml
from pathlib import Path
from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field
from loguru import logger

from .errors import ConfigurationError


class AppConfig(BaseModel):
    """Main application configuration"""

    # Flask settings
    SECRET_KEY: str = Field(default_factory=lambda: os.urandom(24).hex())
    PRINTSPACE_ENV: str = "development"
    DEBUG: bool = True
    TESTING: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/printspace.log"

    # Print geometry
    DEFAULT_DPI: int = 300
    SCREEN_DPI: int = 96
    DEFAULT_BLEED_MM: float = 3.0
    DEFAULT_SAFE_MM: float = 5.0

    # Layout and editing
    LAYOUT_GUTTER: float = 0.02  # 2% of the slot area
    SLOT_AREA: str = "safe"  # or "trim"
    FREE_IMAGE_FRACTION: float = 0.6
    QR_TARGET_INCHES: float = 0.5
    SNAP_THRESHOLD_PX: float = 5.0
    UNDO_LIMIT: int = 50

    # Display
    MAX_DISPLAY_WIDTH: int = 800
    MAX_DISPLAY_HEIGHT: int = 600

    # Preflight
    MIN_IMAGE_DPI: float = 200.0
    MIN_FONT_PT: float = 7.0

    # Borders
    BORDER_INSET_MM: float = 3.0
    BORDER_CORNER_MM: float = 15.0
    BORDER_EDGE_MM: float = 4.0

    # Export
    EXPORT_MAX_PIXEL_RATIO: float = 4.0
    EXPORT_WORKERS: int = 2
    PLACEHOLDER_FILL: str = "#d1d5db"
    BACKGROUND_DEFAULT: str = "#ffffff"
    DEFAULT_FONT_FAMILY: str = "DejaVuSans"
    ASSET_CACHE_SIZE: int = 32  # decoded images kept in memory

    # Drafts
    DRAFT_ASSET_SIZE_CAP: Optional[int] = 60 * 1024 * 1024  # 60MB
    DRAFT_FOLDER: str = "drafts"

    # Catalog
    PRODUCT_CATALOG_FILE: Optional[str] = None


def load_yaml_config(file_path: str) -> Dict:
    """Load configuration from YAML file"""
    path = Path(file_path)
    if not path.exists():
        logger.debug(f"Config file not found: {file_path}")
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config file {file_path}: {e}")
        return {}


def load_config(environment: str = "development", overrides: Dict[str, Any] = None) -> AppConfig:
    """Load configuration with environment-specific overrides"""

    # Load base settings
    base_config = load_yaml_config("config/settings.yaml")

    # Load environment-specific settings
    env_config = load_yaml_config(f"config/settings_{environment}.yaml")

    # Merge configurations (env overrides base)
    config_dict = {**base_config, **env_config}

    # Apply environment variable overrides
    env_overrides = {
        'PRINTSPACE_ENV': os.getenv('PRINTSPACE_ENV', environment),
        'LOG_LEVEL': os.getenv('LOG_LEVEL'),
        'LOG_FILE': os.getenv('LOG_FILE'),
        'SECRET_KEY': os.getenv('SECRET_KEY'),
        'DEFAULT_DPI': os.getenv('DEFAULT_DPI'),
        'PRODUCT_CATALOG_FILE': os.getenv('PRODUCT_CATALOG_FILE'),
    }

    # Only include non-None values
    env_overrides = {k: v for k, v in env_overrides.items() if v is not None}
    config_dict.update(env_overrides)

    # DEBUG follows the environment unless set explicitly
    if 'PRINTSPACE_ENV' in config_dict:
        config_dict['DEBUG'] = config_dict['PRINTSPACE_ENV'] == 'development'

    if overrides:
        config_dict.update(overrides)

    try:
        return AppConfig(**config_dict)
    except ValueError as e:
        logger.error(f"Configuration validation error: {e}")
        # Return default config on validation error
        return AppConfig()


# Global config instance
_config_instance = None


def get_config() -> AppConfig:
    """Get the process-wide configuration instance"""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def set_config(config: AppConfig) -> None:
    """Replace the process-wide configuration (used by the app factory and tests)"""
    global _config_instance
    _config_instance = config


class OptionConfig(BaseModel):
    """One choosable value for a selection axis"""
    id: str
    label: str
    value: Optional[str] = None
    price: Optional[float] = None
    disabled: bool = False
    metadata: Dict[str, Any] = {}


class ProductTypeConfig(BaseModel):
    """Product type definition for the mock catalog"""
    id: str
    label: str
    category: str = "cards"
    base_price: float = 0.0
    foldable: bool = False
    double_sided: bool = True
    sizes: List[OptionConfig] = []


def parse_product_catalog(config_data: Dict[str, Any], source: str = "<built-in>") -> Dict[str, Any]:
    """Validate raw catalog data into ``{"product_types": {...}, "papers": [...], ...}``

    The layout mirrors the built-in catalog of the mock provider::

        product_types:
          - id: greeting-card
            label: Greeting Card
            base_price: 3.99
            foldable: true
            sizes:
              - {id: 5x7, label: '5" x 7"', metadata: {mm: {w: 127, h: 178}}}
        papers: [...]
        folds: [...]
        foils: [...]
        envelopes: [...]
    """
    if not config_data or not config_data.get("product_types"):
        raise ConfigurationError(
            f"Product catalog is empty or missing: {source}",
            details={'path': source},
            suggestions=["Check the PRODUCT_CATALOG_FILE setting"]
        )

    product_types = {}
    for item in config_data.get("product_types", []):
        try:
            product = ProductTypeConfig(**item)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid product type entry {item.get('id', 'unknown')}: {e}",
                details={'path': source}
            ) from e
        for size in product.sizes:
            mm = size.metadata.get('mm') or {}
            if not mm.get('w') or not mm.get('h'):
                raise ConfigurationError(
                    f"Size {size.id} of {product.id} has no mm dimensions",
                    details={'path': source, 'size': size.id}
                )
        product_types[product.id] = product

    catalog = {"product_types": product_types}
    for axis in ("papers", "folds", "foils", "envelopes"):
        try:
            catalog[axis] = [OptionConfig(**item) for item in config_data.get(axis, [])]
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid {axis} entry in product catalog: {e}",
                details={'path': source}
            ) from e

    return catalog


def load_product_catalog(file_path: str) -> Dict[str, Any]:
    """Load and validate a product catalog from YAML"""
    catalog = parse_product_catalog(load_yaml_config(file_path), source=file_path)
    logger.info(f"Loaded {len(catalog['product_types'])} product types from {file_path}")
    return catalog
