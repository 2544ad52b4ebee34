"""
Race configuration loading.

Race files use the same camelCase keys as saved races. The default file is
`config/race.yaml` in the project root, beside the package directory; it is
not shipped in built wheels, so an installed package must be given a path.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import yaml

from .exceptions import ConfigurationError
from .race.types import RaceConfig

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent.parent / 'config'
DEFAULT_RACE_FILE = 'race.yaml'


def load_race_config(path: Optional[Union[str, Path]] = None) -> RaceConfig:
    """
    Load and validate a race configuration file.

    Args:
        path: YAML file; defaults to config/race.yaml

    Raises:
        ConfigurationError: If the file is missing, unparseable or invalid
    """
    config_file = Path(path) if path else CONFIG_DIR / DEFAULT_RACE_FILE
    if not config_file.exists():
        raise ConfigurationError([f'Configuration file not found: {config_file}'])

    try:
        with open(config_file, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError([f'Invalid YAML in {config_file}: {e}']) from e

    if not isinstance(data, dict):
        raise ConfigurationError([f'{config_file} does not describe a race'])

    race_config = RaceConfig.from_dict(data).ensure_valid()
    logger.info(f"Loaded race configuration for {race_config.track} from {config_file}")
    return race_config
