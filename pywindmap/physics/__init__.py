"""Wind blending, advection and boundary handling."""

from pywindmap.physics.advection import blend_direction, blend_speed, displacement
from pywindmap.physics.boundary import wrap_position

__all__ = [
    'blend_direction',
    'blend_speed',
    'displacement',
    'wrap_position',
]
