from rhythm2midi.repeats import (
    ExpansionResult, expand_repeats, expand_section_repeats, expand_single_repeats,
    last_measure_cut, pad_to_measure,
)
from rhythm2midi.timeline import MeasureDefinition as MD, MeasureRepeat, SectionRepeat


def test_pad_to_measure():
    assert pad_to_measure("D-T-", 16) == "D-T- " + "_" * 12
    assert pad_to_measure("D" + "-" * 15, 16) == "D" + "-" * 15
    assert pad_to_measure("D" + "-" * 17, 16) == "D" + "-" * 17 + " " + "_" * 14
    assert pad_to_measure("D-|T-", 16) == "D-|T- " + "_" * 14


def test_last_measure_cut():
    assert last_measure_cut("D---____________", 16) == 0
    assert last_measure_cut("D---____________ T---____________", 16) == 16
    # Token reicht über die Grenze
    assert last_measure_cut("D-----------------" + " " + "_" * 14, 16) is None


def test_single_repeat_plays_n_times_total():
    res = expand_single_repeats("D---|x3", 16)
    assert res.notation.count("D---") == 3
    assert res.mapping == (MD(0, 0), MD(0, 0), MD(0, 0))
    assert res.repeats == (MeasureRepeat(0, [1, 2]),)


def test_single_repeat_loops_only_last_measure():
    notation = "D-T-____D-T-____ D-K-____D-K-____|x3"
    res = expand_single_repeats(notation, 16)
    assert res.mapping == (MD(0, 0), MD(1, 17), MD(1, 17), MD(1, 17))
    assert res.repeats == (MeasureRepeat(1, [2, 3]),)
    assert res.notation.count("D-T-____D-T-____") == 1
    assert res.notation.count("D-K-____D-K-____") == 3


def test_single_repeat_offsets_skip_leading_whitespace():
    res = expand_single_repeats("D---------------|   T---|x2", 16)
    assert res.mapping == (MD(0, 0), MD(1, 20), MD(1, 20))
    assert res.repeats == (MeasureRepeat(1, [2]),)


def test_single_repeat_with_straddling_token_loops_whole_chunk():
    res = expand_single_repeats("D-----------------|x2", 16)
    assert res.mapping == (MD(0, 0), MD(1, 0), MD(0, 0), MD(1, 0))
    assert res.repeats == (MeasureRepeat(0, [2]), MeasureRepeat(1, [3]))


def test_single_repeat_count_of_one_has_no_ghosts():
    res = expand_single_repeats("D---|x1 T---", 16)
    assert res.repeats == ()
    assert len(res.mapping) == 2


def test_section_repeat_defaults_to_two_playings():
    res = expand_repeats("|:D-T-:|", 16)
    assert res.mapping == (MD(0, 2), MD(0, 2))
    assert res.repeats == (SectionRepeat(0, 0, 1),)


def test_section_repeat_xn_plays_n_plus_one():
    res = expand_repeats("|:D-T-:|x3", 16)
    assert len(res.mapping) == 4
    assert set(res.mapping) == {MD(0, 2)}
    assert res.repeats == (SectionRepeat(0, 0, 3),)


def test_section_repeat_shifts_following_measures():
    notation = "D---____________ |: T---____________ :|x2 K---____________"
    res = expand_repeats(notation, 16)
    assert res.mapping == (MD(0, 0), MD(1, 20), MD(1, 20), MD(1, 20), MD(4, 42))
    assert res.repeats == (SectionRepeat(1, 1, 2),)
    assert notation[42] == "K"


def test_section_pass_remaps_single_repeat_markers():
    notation = "|:T---:| D---|x3"
    res = expand_repeats(notation, 16)
    # Pass 1 kennt nur 2 Takte vor den Geistern, Pass 2 schiebt um einen
    assert res.repeats == (MeasureRepeat(2, [3, 4]), SectionRepeat(0, 0, 1))
    assert res.mapping[2:] == (MD(2, 9), MD(2, 9), MD(2, 9))


def test_single_repeat_nested_in_section():
    res = expand_repeats("|: D---|x2 :|", 16)
    assert res.mapping == (MD(0, 3),) * 4
    assert res.repeats == (MeasureRepeat(0, [1]), SectionRepeat(0, 1, 1))


def test_partial_measure_before_section_is_closed():
    res = expand_repeats("D-T- |:K---:|", 16)
    assert len(res.mapping) == 3
    assert res.repeats == (SectionRepeat(1, 1, 1),)


def test_expansion_result_is_a_value():
    a = expand_repeats("D---|x2", 16)
    b = expand_repeats("D---|x2", 16)
    assert isinstance(a, ExpansionResult)
    assert a == b
