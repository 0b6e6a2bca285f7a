import pytest

from rhythm2midi.analyze import parse_rhythm
from rhythm2midi.config import load_config
from rhythm2midi.process import build_timelines
from rhythm2midi.timeline import TimeSignature


@pytest.fixture
def cfg(tmp_path):
    return load_config(user_path=tmp_path / "missing.yaml")


def test_hits_and_default_accents(cfg):
    tl = build_timelines(parse_rhythm("D-T-K-T-D-T-K-T-", TimeSignature(4, 4)), cfg)
    assert len(tl.hits) == 8
    first = tl.hits[0]
    assert (first.start_tick, first.end_tick, first.midi, first.velocity) == (0, 240, 36, 114)
    assert {h.velocity for h in tl.hits[1:]} == {51}
    assert [h.midi for h in tl.hits[:4]] == [36, 38, 37, 38]
    assert tl.channel == 9
    assert tl.total_ticks == 1920
    assert tl.clicks == []


def test_group_accents_for_simple_meter(cfg):
    cfg["accents"]["emphasize_simple_rhythms"] = True
    tl = build_timelines(parse_rhythm("D-T-K-T-D-T-K-T-", TimeSignature(4, 4)), cfg)
    assert [h.velocity for h in tl.hits[:3]] == [114, 51, 89]


def test_asymmetric_meter_accents_group_starts(cfg):
    tl = build_timelines(parse_rhythm("D-----T---K---", TimeSignature(7, 8)), cfg)
    assert [(h.start_tick, h.velocity) for h in tl.hits] == [(0, 114), (720, 89), (1200, 89)]


def test_tied_note_sounds_once_for_full_length(cfg):
    tl = build_timelines(parse_rhythm("D" + "-" * 17, TimeSignature(4, 4)), cfg)
    assert len(tl.hits) == 1
    assert tl.hits[0].end_tick == 2160


def test_rests_and_unmapped_sounds_produce_no_hits(cfg):
    tl = build_timelines(parse_rhythm("____S---", TimeSignature(4, 4)), cfg)
    assert [(h.sound, h.start_tick) for h in tl.hits] == [("slap", 480)]
    del cfg["drum_map"]["slap"]
    assert build_timelines(parse_rhythm("____S---", TimeSignature(4, 4)), cfg).hits == []


def test_metronome_clicks(cfg):
    cfg["metronome"]["enabled"] = True
    tl = build_timelines(parse_rhythm("D---------------", TimeSignature(4, 4)), cfg)
    assert [c.tick for c in tl.clicks] == [0, 480, 960, 1440]
    assert [c.velocity for c in tl.clicks] == [51, 32, 32, 32]
    assert tl.clicks[0].downbeat and tl.clicks[0].midi == 76
    assert tl.clicks[1].midi == 77


def test_metronome_stops_at_end_of_short_measure(cfg):
    cfg["metronome"]["enabled"] = True
    tl = build_timelines(parse_rhythm("D-----", TimeSignature(4, 4)), cfg)
    assert [c.tick for c in tl.clicks] == [0, 480]


def test_tempo_and_resolution_from_config(cfg):
    cfg["tempo_bpm"] = 90
    cfg["ticks_per_beat"] = 960
    tl = build_timelines(parse_rhythm("D---", TimeSignature(4, 4)), cfg)
    assert tl.tempo_bpm == 90.0
    assert tl.hits[0].end_tick == 960
