"""
Move-list Loader Configuration Module

Loads and provides access to decoder configuration from loader_config.yaml.
"""

import os
from typing import Optional
from dataclasses import dataclass, field

import yaml


@dataclass
class TableConfig:
    """Sequence table sizing."""
    default_size: int = 1000
    max_sequences: int = 4096


@dataclass
class PackedConfig:
    """Legacy packed (.DAT) decoder settings."""
    max_frames_per_sequence: int = 256
    attack_box_type_threshold: int = 10
    csel_sprite_base: int = 10000
    compact_sequence_indices: bool = True
    image_search_limit: int = 2000000


@dataclass
class TextConfig:
    """Text decoding settings."""
    legacy_encoding: str = "cp932"


@dataclass
class LoggingConfig:
    """Diagnostics settings."""
    max_entries: int = 2000
    verbose: bool = False


@dataclass
class LoaderConfig:
    """Complete loader configuration."""
    table: TableConfig = field(default_factory=TableConfig)
    packed: PackedConfig = field(default_factory=PackedConfig)
    text: TextConfig = field(default_factory=TextConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global config instance
_config: Optional[LoaderConfig] = None


def get_config_path() -> str:
    """Get the path to the default config file."""
    return os.path.join(os.path.dirname(__file__), 'loader_config.yaml')


def load_config(config_path: Optional[str] = None) -> LoaderConfig:
    """
    Load loader configuration from YAML file.

    Args:
        config_path: Path to config file (default: loader_config.yaml in this directory)

    Returns:
        LoaderConfig instance
    """
    global _config

    if config_path is None:
        config_path = get_config_path()

    config = LoaderConfig()

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
        _apply_dict(config, data)

    _config = config
    return config


def get_config() -> LoaderConfig:
    """
    Get the current loader configuration.

    Loads from file if not already loaded.
    """
    global _config
    if _config is None:
        load_config()
    return _config


def config_to_dict(config: Optional[LoaderConfig] = None) -> dict:
    """
    Convert LoaderConfig to a plain dictionary.

    Args:
        config: LoaderConfig to convert (uses global if None)
    """
    if config is None:
        config = get_config()

    return {
        'table': {
            'default_size': config.table.default_size,
            'max_sequences': config.table.max_sequences,
        },
        'packed': {
            'max_frames_per_sequence': config.packed.max_frames_per_sequence,
            'attack_box_type_threshold': config.packed.attack_box_type_threshold,
            'csel_sprite_base': config.packed.csel_sprite_base,
            'compact_sequence_indices': config.packed.compact_sequence_indices,
            'image_search_limit': config.packed.image_search_limit,
        },
        'text': {
            'legacy_encoding': config.text.legacy_encoding,
        },
        'logging': {
            'max_entries': config.logging.max_entries,
            'verbose': config.logging.verbose,
        },
    }


def update_config_from_dict(data: dict) -> LoaderConfig:
    """
    Update the global config from a dictionary.

    Args:
        data: Dictionary with config values

    Returns:
        Updated LoaderConfig
    """
    global _config

    if _config is None:
        _config = LoaderConfig()

    _apply_dict(_config, data)
    return _config


def _apply_dict(config: LoaderConfig, data: dict):
    """Copy known keys from a config dictionary onto a LoaderConfig."""
    # Table settings
    table = data.get('table') or {}
    if 'default_size' in table:
        config.table.default_size = int(table['default_size'])
    if 'max_sequences' in table:
        config.table.max_sequences = int(table['max_sequences'])

    # Packed decoder settings
    packed = data.get('packed') or {}
    if 'max_frames_per_sequence' in packed:
        config.packed.max_frames_per_sequence = int(packed['max_frames_per_sequence'])
    if 'attack_box_type_threshold' in packed:
        config.packed.attack_box_type_threshold = int(packed['attack_box_type_threshold'])
    if 'csel_sprite_base' in packed:
        config.packed.csel_sprite_base = int(packed['csel_sprite_base'])
    if 'compact_sequence_indices' in packed:
        config.packed.compact_sequence_indices = bool(packed['compact_sequence_indices'])
    if 'image_search_limit' in packed:
        config.packed.image_search_limit = int(packed['image_search_limit'])

    # Text settings
    text = data.get('text') or {}
    if text.get('legacy_encoding'):
        config.text.legacy_encoding = str(text['legacy_encoding'])

    # Logging settings
    log = data.get('logging') or {}
    if 'max_entries' in log:
        config.logging.max_entries = int(log['max_entries'])
    if 'verbose' in log:
        config.logging.verbose = bool(log['verbose'])


__all__ = [
    'LoaderConfig',
    'TableConfig',
    'PackedConfig',
    'TextConfig',
    'LoggingConfig',
    'load_config',
    'get_config',
    'get_config_path',
    'config_to_dict',
    'update_config_from_dict',
]
