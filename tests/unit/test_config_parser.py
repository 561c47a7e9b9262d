"""Unit tests for the WINDMAP namelist parser and writer."""

import pytest

from pywindmap.core.models import ConfigParseError, FieldConfig
from pywindmap.data.config_parser import (
    load_config,
    parse_config,
    parse_namelist,
    write_config,
)

SAMPLE = """\
&WINDMAP
 NUMPAR = 20000,        ! particle count
 RESPAWN = 0.05,
 blend = 0.1,
 PROJECTION = 'equirectangular',
 VECTORQ = .TRUE.,
 SEED = 42,
/
"""


def test_parse_sample():
    cfg = parse_config(SAMPLE)
    assert cfg.num_particles == 20000
    assert cfg.respawn_fraction == 0.05
    assert cfg.blend_factor == 0.1
    assert cfg.projection == "equirectangular"
    assert cfg.vectorized_queries is True
    assert cfg.seed == 42
    # Untouched keys keep their defaults
    assert cfg.speed_multiplier == 15.0
    assert cfg.max_trail_length == 10


def test_several_pairs_on_one_line():
    kwargs = parse_namelist("&WINDMAP TPS = 60, MAXTRAIL = 5 /")
    assert kwargs == {"ticks_per_second": 60, "max_trail_length": 5}


def test_unknown_keys_ignored():
    cfg = parse_config("&WINDMAP\n COLOR_SCHEME = 'dark',\n NUMPAR = 10,\n/\n")
    assert cfg.num_particles == 10


@pytest.mark.parametrize("raw, expected", [
    (".TRUE.", True), ("T", True), ("1", True),
    (".FALSE.", False), ("f", False), ("0", False),
])
def test_boolean_forms(raw, expected):
    assert parse_namelist(f"&WINDMAP\n VECTORQ = {raw},\n/")["vectorized_queries"] is expected


def test_missing_header_raises():
    with pytest.raises(ConfigParseError) as exc_info:
        parse_config(" NUMPAR = 10,\n/\n")
    assert exc_info.value.expected == "&WINDMAP"


def test_bad_integer_reports_line():
    text = "&WINDMAP\n RESPAWN = 0.02,\n NUMPAR = lots,\n/\n"
    with pytest.raises(ConfigParseError) as exc_info:
        parse_config(text)
    assert exc_info.value.line_number == 3
    assert "NUMPAR" in str(exc_info.value)


@pytest.mark.parametrize("raw", ["inf", "-inf", "nan", "12.7", "1e400"])
def test_non_whole_integer_rejected(raw):
    with pytest.raises(ConfigParseError) as exc_info:
        parse_namelist(f"&WINDMAP\n NUMPAR = {raw},\n/")
    assert exc_info.value.line_number == 2


@pytest.mark.parametrize("raw, expected", [("5000.", 5000), ("1e3", 1000), ("7.0", 7)])
def test_whole_real_accepted_as_integer(raw, expected):
    assert parse_namelist(f"&WINDMAP\n NUMPAR = {raw},\n/")["num_particles"] == expected


def test_bad_boolean_raises():
    with pytest.raises(ConfigParseError):
        parse_config("&WINDMAP\n VECTORQ = maybe,\n/\n")


def test_out_of_range_value_raises_config_error():
    with pytest.raises(ConfigParseError):
        parse_config("&WINDMAP\n BLEND = 1.5,\n/\n")


def test_write_then_parse_reproduces_config():
    cfg = FieldConfig(
        num_particles=1234,
        blend_factor=0.2,
        projection="equirectangular",
        vectorized_queries=True,
        seed=7,
    )
    assert parse_config(write_config(cfg)) == cfg


def test_write_omits_unset_seed():
    text = write_config(FieldConfig())
    assert text.startswith("&WINDMAP\n")
    assert "SEED" not in text
    assert " VECTORQ = .TRUE.," in text
    assert text.rstrip().endswith("/")


def test_load_config(tmp_path):
    path = tmp_path / "WINDMAP.CFG"
    path.write_text(SAMPLE, encoding="utf-8")
    assert load_config(path) == parse_config(SAMPLE)
