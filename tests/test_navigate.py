from rhythm2midi.analyze import parse_rhythm
from rhythm2midi.navigate import (
    VisualPosition, edit_target, find_measure_index_at_tick, find_measure_index_from_visual_tick,
    hidden_measure_indices, is_ghost_measure,
)
from rhythm2midi.timeline import MeasureDefinition as MD, TimeSignature

FOUR_FOUR = TimeSignature(4, 4)


def test_measure_at_tick():
    r = parse_rhythm("D---|x3", FOUR_FOUR)
    assert find_measure_index_at_tick(r, 0) == (0, 0)
    assert find_measure_index_at_tick(r, 20) == (1, 16)
    assert find_measure_index_at_tick(r, -1) == (0, 0)
    # hinter dem Ende -> Anhängen
    assert find_measure_index_at_tick(r, 48) == (3, 48)


def test_short_last_measure_is_drawn_full_width():
    r = parse_rhythm("D---____________ T-", FOUR_FOUR)
    assert find_measure_index_at_tick(r, 30) == (1, 16)
    assert find_measure_index_at_tick(r, 32) == (2, 32)


def test_measure_at_tick_without_measures():
    r = parse_rhythm("", FOUR_FOUR)
    assert find_measure_index_at_tick(r, 10) == (0, 0)
    assert find_measure_index_from_visual_tick(r, 10) == VisualPosition(0, 0, 0, 0)


def test_visual_tick_skips_hidden_section_playings():
    r = parse_rhythm("|:D-T-:|x2 K---", FOUR_FOUR)
    assert r.measure_mapping == [MD(0, 2), MD(0, 2), MD(0, 2), MD(3, 11)]
    assert hidden_measure_indices(r) == {1, 2}
    assert find_measure_index_from_visual_tick(r, 5) == VisualPosition(0, 0, 0, 5)
    assert find_measure_index_from_visual_tick(r, 20) == VisualPosition(3, 16, 48, 4)
    assert find_measure_index_from_visual_tick(r, 100) == VisualPosition(3, 32, 64, 0)


def test_single_repeat_ghosts_stay_visible():
    r = parse_rhythm("D---|x3", FOUR_FOUR)
    assert hidden_measure_indices(r) == set()
    assert find_measure_index_from_visual_tick(r, 20).index == 1


def test_edit_target_redirects_ghosts_to_source():
    r = parse_rhythm("D---____________ |: T---____________ :|x2 K---____________", FOUR_FOUR)
    assert edit_target(r, 3) == edit_target(r, 1) == MD(1, 20)
    assert is_ghost_measure(r, 3)
    assert not is_ghost_measure(r, 1)
    assert edit_target(r, 4) == MD(4, 42)
    assert edit_target(r, 99) is None
    assert edit_target(r, -1) is None


def test_edit_target_redirects_simile_copy_to_source():
    r = parse_rhythm("D-T-K-T-D-T-K-T- %", FOUR_FOUR)
    assert is_ghost_measure(r, 1)
    assert r.measure_mapping[1] == MD(1, 17)
    assert edit_target(r, 1) == MD(0, 0)


def test_edit_target_redirects_detected_repeat_to_source():
    r = parse_rhythm("D-T-K-T-D-T-K-T- D-T-K-T-D-T-K-T-", FOUR_FOUR)
    assert r.measure_source_mapping == {1: 0}
    assert edit_target(r, 1) == edit_target(r, 0) == MD(0, 0)


def test_edit_target_of_plain_measure_is_its_own_definition():
    r = parse_rhythm("D---____________ T---", FOUR_FOUR)
    assert not is_ghost_measure(r, 1)
    assert edit_target(r, 1) == MD(1, 17)
