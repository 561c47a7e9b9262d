"""WINDMAP namelist configuration parser and writer.

Reads a Fortran-style namelist block into a :class:`FieldConfig`::

    &WINDMAP
     NUMPAR = 50000,
     RESPAWN = 0.02,
     BLEND = 0.05,
     PROJECTION = 'mercator',
    /

and generates the same block back from a config.
"""

from __future__ import annotations

import logging
import re
from dataclasses import fields
from pathlib import Path
from typing import Any

from pywindmap.core.models import ConfigParseError, FieldConfig

logger = logging.getLogger(__name__)


# Mapping from namelist keys to FieldConfig field names + types
_KEY_MAP: dict[str, tuple[str, type]] = {
    "NUMPAR": ("num_particles", int),
    "RESPAWN": ("respawn_fraction", float),
    "BLEND": ("blend_factor", float),
    "SPEEDUP": ("speed_multiplier", float),
    "MAXTRAIL": ("max_trail_length", int),
    "TRAILALPHA": ("trail_opacity", float),
    "TRAILWIDTH": ("trail_width", float),
    "TPS": ("ticks_per_second", int),
    "MINCOS": ("min_lon_scale", float),
    "PROJECTION": ("projection", str),
    "VECTORQ": ("vectorized_queries", bool),
    "SEED": ("seed", int),
}

_PAIR_RE = re.compile(r"(\w+)\s*=\s*([^,/\n]+)")


def _parse_value(key: str, raw: str, field_type: type, line_number: int) -> Any:
    val = raw.strip().rstrip(",").strip()
    if field_type is bool:
        # Fortran booleans: .TRUE., .FALSE., T, F, 1, 0
        val_upper = val.upper().strip(".")
        if val_upper in ("TRUE", "T", "1"):
            return True
        if val_upper in ("FALSE", "F", "0"):
            return False
        raise ConfigParseError(
            f"Cannot parse boolean '{val}' for {key}",
            line_number=line_number,
            expected=".TRUE. or .FALSE.",
        )
    if field_type is int:
        # Fortran writes whole reals such as 5000. or 5.0E3 for integers
        try:
            number = float(val)
            if not number.is_integer():
                raise ValueError(f"{val} is not a whole number")
            return int(number)
        except (ValueError, OverflowError):
            raise ConfigParseError(
                f"Cannot parse integer '{val}' for {key}",
                line_number=line_number,
                expected=f"integer ({key})",
            )
    if field_type is float:
        try:
            return float(val)
        except ValueError:
            raise ConfigParseError(
                f"Cannot parse float '{val}' for {key}",
                line_number=line_number,
                expected=f"float ({key})",
            )
    return val.strip("'\"")


def parse_namelist(text: str) -> dict[str, Any]:
    """Parse a ``&WINDMAP`` namelist into FieldConfig keyword arguments.

    Keys are case-insensitive; unknown keys are ignored.

    Raises
    ------
    ConfigParseError
        If the block header is missing or a known key has a bad value.
    """
    if not re.search(r"&WINDMAP\b", text, flags=re.IGNORECASE):
        raise ConfigParseError(
            "Missing namelist header",
            line_number=1,
            expected="&WINDMAP",
        )

    result: dict[str, Any] = {}
    for line_number, line in enumerate(text.splitlines(), start=1):
        # Strip the &WINDMAP ... / block markers and ! comments
        content = line.split("!", 1)[0]
        content = re.sub(r"&WINDMAP\b", "", content, flags=re.IGNORECASE)
        content = re.sub(r"&END\b", "", content, flags=re.IGNORECASE)

        for key_raw, val_raw in _PAIR_RE.findall(content):
            key = key_raw.strip().upper()
            if key not in _KEY_MAP:
                logger.debug("Ignoring unknown namelist key %s", key)
                continue
            field_name, field_type = _KEY_MAP[key]
            result[field_name] = _parse_value(key, val_raw, field_type, line_number)

    return result


def parse_config(text: str) -> FieldConfig:
    """Parse namelist text into a validated :class:`FieldConfig`.

    Raises
    ------
    ConfigParseError
        On any parsing or validation error.
    """
    kwargs = parse_namelist(text)
    try:
        return FieldConfig(**kwargs)
    except ValueError as e:
        raise ConfigParseError(str(e), expected="value within range") from e


def load_config(path: str | Path) -> FieldConfig:
    """Read and parse a namelist file."""
    path = Path(path)
    config = parse_config(path.read_text(encoding="utf-8"))
    logger.info("Loaded field configuration from %s", path)
    return config


# Reverse mapping: FieldConfig field name → namelist key
_FIELD_TO_KEY: dict[str, str] = {v[0]: k for k, v in _KEY_MAP.items()}


def write_config(config: FieldConfig) -> str:
    """Generate a ``&WINDMAP`` namelist from a FieldConfig.

    Fields left at ``None`` are omitted.
    """
    lines: list[str] = ["&WINDMAP"]
    for f in fields(config):
        key = _FIELD_TO_KEY.get(f.name)
        if key is None:
            continue
        value = getattr(config, f.name)
        if value is None:
            continue
        if isinstance(value, bool):
            lines.append(f" {key} = {'.TRUE.' if value else '.FALSE.'},")
        elif isinstance(value, str):
            lines.append(f" {key} = '{value}',")
        else:
            lines.append(f" {key} = {value},")
    lines.append(" /")
    return "\n".join(lines) + "\n"
