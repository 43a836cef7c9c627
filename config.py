#!/usr/bin/env python3
"""
Configuration Management for Layout Search

This module provides structured configuration loading, validation,
and management for scoring and improving keyboard layouts.
It handles the keyboard geometry, the corpus alphabet, file paths,
and local-search parameters.

Features:
- YAML-based configuration with comprehensive validation
- "Inf" accepted for search limits
- Automatic creation of the results folder
- Clear error messages for configuration issues

"""

import yaml
import os
from typing import List, Optional, Union
from dataclasses import dataclass, field

from ngram_index import ROW, COL

DEFAULT_ALPHABET = "abcdefghijklmnopqrstuvwxyz-=[]\\;',./"


def parse_limit(value: Union[int, float, str, None], name: str) -> float:
    """Convert a numeric limit or the string 'Inf' to a float."""
    if value is None:
        return float('inf')
    if isinstance(value, str):
        if value.strip().lower() in ('inf', 'infinity', 'none'):
            return float('inf')
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"{name} must be a number or 'Inf', got '{value}'")
    check_number(value, name)
    return float(value)


def check_integer(value, name: str) -> None:
    """Reject anything but a plain int (YAML booleans included)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")


def check_number(value, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass
class PathConfig:
    """File paths for input and output."""
    corpus_folder: str
    weights_file: str
    stats_file: str = ""
    layout_folder: str = "layouts"
    layout_results_folder: str = "output/layouts"


@dataclass
class KeyboardConfig:
    """Physical keyboard description."""
    rows: int = ROW
    cols: int = COL
    fingers: Optional[List[int]] = None
    use_builtin_stats: bool = True


@dataclass
class CorpusConfig:
    """Supported characters; the order defines character ids."""
    alphabet: str = DEFAULT_ALPHABET


@dataclass
class SearchConfig:
    """Local-search (simulated annealing) parameters."""

    threads: int = 4
    swaps_per_round: int = 1
    initial_temperature: float = 10.0
    cooling: str = "exponential"
    cooling_rate: float = 0.999

    # Limits (can be numbers or "Inf")
    max_rounds: Union[int, float, str] = 10000
    time_limit: Union[float, str] = "Inf"
    patience: Union[int, float, str] = "Inf"

    seed: Optional[int] = None
    ranking_size: int = 10
    generate_count: int = 1000

    def __post_init__(self):
        """Normalize limits to floats."""
        self.max_rounds = parse_limit(self.max_rounds, "max_rounds")
        self.time_limit = parse_limit(self.time_limit, "time_limit")
        self.patience = parse_limit(self.patience, "patience")


@dataclass
class VisualizationConfig:
    """Visualization and display settings."""
    show_progress_bar: bool = True
    verbose_output: bool = False


@dataclass
class Config:
    """Complete configuration container."""
    paths: PathConfig
    keyboard: KeyboardConfig = field(default_factory=KeyboardConfig)
    corpus: CorpusConfig = field(default_factory=CorpusConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)

    # Internal tracking
    _config_path: str = "config.yaml"


def load_config(config_path: str = "config.yaml") -> Config:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration YAML file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If configuration is invalid
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML configuration: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")

    # Validate required sections exist
    required_sections = ['paths']
    missing_sections = [section for section in required_sections if section not in raw_config]
    if missing_sections:
        raise ValueError(f"Missing required configuration sections: {missing_sections}")

    # Parse configuration sections
    try:
        paths = PathConfig(**raw_config['paths'])
    except (KeyError, TypeError) as e:
        raise ValueError(f"Error parsing paths configuration: {e}")

    sections = {}
    for name, section_class in (('keyboard', KeyboardConfig), ('corpus', CorpusConfig),
                                 ('search', SearchConfig), ('visualization', VisualizationConfig)):
        try:
            sections[name] = section_class(**(raw_config.get(name) or {}))
        except TypeError as e:
            raise ValueError(f"Error parsing {name} configuration: {e}")

    # Create complete configuration object
    config = Config(paths, _config_path=config_path, **sections)

    # Validate the complete configuration
    validate_config(config)

    os.makedirs(config.paths.layout_results_folder, exist_ok=True)

    return config


def validate_config(config: Config) -> None:
    """
    Perform comprehensive validation of configuration.

    Args:
        config: Configuration object to validate

    Raises:
        ValueError: If any validation check fails
    """
    keyboard = config.keyboard
    check_integer(keyboard.rows, "keyboard.rows")
    check_integer(keyboard.cols, "keyboard.cols")
    if keyboard.rows < 1 or keyboard.cols < 1:
        raise ValueError(f"Keyboard must have at least one row and column, got {keyboard.rows}x{keyboard.cols}")
    if keyboard.fingers is not None:
        if not isinstance(keyboard.fingers, (list, tuple)):
            raise ValueError(f"fingers must be a list of finger numbers, got {keyboard.fingers!r}")
        for finger in keyboard.fingers:
            check_integer(finger, "keyboard.fingers entry")
        if len(keyboard.fingers) != keyboard.cols:
            raise ValueError(
                f"fingers lists {len(keyboard.fingers)} columns but the keyboard has {keyboard.cols}"
            )
        if any(not 0 <= f <= 7 for f in keyboard.fingers):
            raise ValueError(f"fingers must be numbers 0..7: {keyboard.fingers}")

    # Check for duplicate characters within the alphabet
    alphabet = config.corpus.alphabet
    if not isinstance(alphabet, str):
        raise ValueError(f"alphabet must be a string, got {alphabet!r}")
    if not alphabet:
        raise ValueError("alphabet cannot be empty")
    if len(set(alphabet)) != len(alphabet):
        duplicates = [char for char in set(alphabet) if alphabet.count(char) > 1]
        raise ValueError(f"Duplicate characters in alphabet: '{alphabet}' (duplicates: {duplicates})")
    if len(alphabet) < keyboard.rows * keyboard.cols:
        raise ValueError(
            f"Alphabet has {len(alphabet)} characters but the keyboard has "
            f"{keyboard.rows * keyboard.cols} keys"
        )

    # Validate search configuration
    search = config.search
    for name in ('threads', 'swaps_per_round', 'ranking_size', 'generate_count'):
        check_integer(getattr(search, name), name)
    for name in ('initial_temperature', 'cooling_rate'):
        check_number(getattr(search, name), name)
    if search.seed is not None:
        check_integer(search.seed, "seed")
    if search.threads < 1:
        raise ValueError("threads must be at least 1")
    if search.swaps_per_round < 1:
        raise ValueError("swaps_per_round must be at least 1")
    if search.initial_temperature < 0:
        raise ValueError("initial_temperature cannot be negative")
    if search.cooling not in ('exponential', 'linear'):
        raise ValueError(f"cooling must be 'exponential' or 'linear', got '{search.cooling}'")
    if search.cooling == 'exponential' and not 0 < search.cooling_rate <= 1:
        raise ValueError("cooling_rate for exponential cooling must be in (0, 1]")
    if search.cooling == 'linear' and search.cooling_rate < 0:
        raise ValueError("cooling_rate for linear cooling cannot be negative")
    if search.max_rounds <= 0:
        raise ValueError("max_rounds must be positive")
    if search.time_limit <= 0:
        raise ValueError("time_limit must be positive")
    if search.patience <= 0:
        raise ValueError("patience must be positive")
    if search.ranking_size < 1:
        raise ValueError("ranking_size must be at least 1")
    if search.generate_count < 1:
        raise ValueError("generate_count must be at least 1")


def print_config_summary(config: Config) -> None:
    """Print human-readable configuration summary."""
    search = config.search

    print(f"\nConfiguration Summary:")
    print(f"  Config file: {config._config_path}")
    print(f"  Keyboard: {config.keyboard.rows}x{config.keyboard.cols}")
    print(f"  Alphabet ({len(config.corpus.alphabet)}): {config.corpus.alphabet}")
    print(f"  Corpus: {config.paths.corpus_folder}")
    print(f"  Weights: {config.paths.weights_file}")
    if config.paths.stats_file:
        print(f"  Custom statistics: {config.paths.stats_file}")
    print(f"  Search: threads={search.threads}, swaps/round={search.swaps_per_round}, "
          f"T0={search.initial_temperature}, cooling={search.cooling}({search.cooling_rate})")
    print(f"  Limits: rounds={search.max_rounds}, time={search.time_limit}s, patience={search.patience}")


def create_default_config(output_path: str = "config.yaml") -> None:
    """
    Create a default configuration file with common settings.

    Args:
        output_path: Path where to save the default config
    """
    default_config = {
        'paths': {
            'corpus_folder': 'input/corpus/english',
            'weights_file': 'weights.yaml',
            'stats_file': '',
            'layout_folder': 'layouts',
            'layout_results_folder': 'output/layouts'
        },
        'keyboard': {
            'rows': ROW,
            'cols': COL,
            'use_builtin_stats': True
        },
        'corpus': {
            'alphabet': DEFAULT_ALPHABET
        },
        'search': {
            'threads': 4,
            'swaps_per_round': 1,
            'initial_temperature': 10.0,
            'cooling': 'exponential',
            'cooling_rate': 0.999,
            'max_rounds': 10000,
            'time_limit': 'Inf',
            'patience': 'Inf',
            'seed': None,
            'ranking_size': 10,
            'generate_count': 1000
        },
        'visualization': {
            'show_progress_bar': True,
            'verbose_output': False
        }
    }

    with open(output_path, 'w') as f:
        yaml.dump(default_config, f, default_flow_style=False, indent=2, sort_keys=False)

    print(f"Default configuration saved to: {output_path}")
