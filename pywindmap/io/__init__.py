"""Drawing collaborators."""

from pywindmap.io.command_recorder import CommandRecorder

__all__ = [
    'CommandRecorder',
]
