from __future__ import annotations
from typing import Dict, List
from .timeline import (
    ParsedRhythm, PlaybackTimeline, DrumHit, ClickEvent, TimeSignature, DEFAULT_BPM
)
from .config import get_ticks_per_beat
from .util.time import (
    beat_group_info, beat_grouping_in_sixteenths, default_beat_grouping,
    sixteenths_to_ticks, ticks_per_measure
)

VOLUME_KEYS = {
    "measure_start": ("measure_accent_volume", 90),
    "beat_group_start": ("beat_group_accent_volume", 70),
    "other": ("non_accent_volume", 40),
}

def _categorize_position(pos: int, grouping: List[int], ts: TimeSignature, cfg: dict) -> str:
    """
    pos: Position im Takt in Sechzehnteln.
    Gruppen-Akzente bei x/4 nur mit emphasize_simple_rhythms.
    """
    if pos == 0:
        return "measure_start"
    _, _, first_of_group = beat_group_info(pos, grouping)
    if first_of_group and (ts.denominator != 4 or cfg.get("emphasize_simple_rhythms", False)):
        return "beat_group_start"
    return "other"

def _apply_accent(cat: str, cfg: dict) -> int:
    key, fallback = VOLUME_KEYS.get(cat, VOLUME_KEYS["other"])
    vol = float(cfg.get(key, fallback))
    vv = int(round(127 * vol / 100.0))
    lo, hi = cfg.get("clamp_to", [1, 127])
    return max(int(lo), min(int(hi), vv))

def _click_positions(grouping: List[int], capacity: int) -> List[int]:
    # Downbeat + Beginn jeder weiteren Schlaggruppe
    out = [0]
    pos = 0
    for size in grouping:
        pos += size
        if pos < capacity:
            out.append(pos)
    return out

def build_timelines(parsed: ParsedRhythm, cfg: dict) -> PlaybackTimeline:
    """
    ParsedRhythm -> PlaybackTimeline in MIDI-Ticks.
    Gebundene Fortsetzungen erzeugen keinen neuen Anschlag; der erste
    Teil klingt über die gesamte gebundene Länge.
    """
    tpb = get_ticks_per_beat(cfg)
    ts = parsed.time_signature
    capacity = ticks_per_measure(ts)
    grouping = beat_grouping_in_sixteenths(default_beat_grouping(ts), ts)
    accents = cfg.get("accents", {}) or {}
    drum_map: Dict[str, int] = cfg.get("drum_map", {}) or {}
    metro = cfg.get("metronome", {}) or {}

    tl = PlaybackTimeline(
        tempo_bpm=float(cfg.get("tempo_bpm", DEFAULT_BPM)),
        time_signature=ts,
        channel=int(cfg.get("drum_channel", 9)) % 16,
        ticks_per_beat=tpb,
    )

    bar_start = 0  # in Sechzehnteln
    for mi, measure in enumerate(parsed.measures):
        pos = 0
        for ni, note in enumerate(measure.notes):
            dur = note.duration_in_sixteenths
            if note.sound in drum_map and not note.is_tied_from:
                length = note.tied_duration if (note.is_tied_to and note.tied_duration) else dur
                start_tick = sixteenths_to_ticks(bar_start + pos, tpb)
                tl.hits.append(DrumHit(
                    start_tick=start_tick,
                    end_tick=start_tick + max(1, sixteenths_to_ticks(length, tpb)),
                    sound=note.sound,
                    midi=int(drum_map[note.sound]),
                    velocity=_apply_accent(_categorize_position(pos, grouping, ts, accents), accents),
                    measure_index=mi,
                    note_index=ni,
                ))
            pos += dur

        if metro.get("enabled", False):
            volume = float(metro.get("volume", 50)) / 100.0
            for p in _click_positions(grouping, capacity):
                if p >= max(measure.total_duration, 1):
                    break
                downbeat = p == 0
                base = 0.8 if downbeat else 0.5
                tl.clicks.append(ClickEvent(
                    tick=sixteenths_to_ticks(bar_start + p, tpb),
                    midi=int(metro.get("downbeat_note" if downbeat else "beat_note", 76 if downbeat else 77)),
                    velocity=max(1, min(127, int(round(127 * base * volume)))),
                    downbeat=downbeat,
                ))

        bar_start += measure.total_duration

    tl.total_ticks = sixteenths_to_ticks(bar_start, tpb)
    tl.hits.sort(key=lambda h: (h.start_tick, h.midi))
    return tl
