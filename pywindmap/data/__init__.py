"""Data I/O: namelist configuration and observation batches."""

from pywindmap.data.config_parser import load_config, parse_config, write_config
from pywindmap.data.observation_reader import read_observations, write_observations

__all__ = [
    'load_config',
    'parse_config',
    'read_observations',
    'write_config',
    'write_observations',
]
