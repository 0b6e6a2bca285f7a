from __future__ import annotations
import mido
from typing import Iterable
from .timeline import PlaybackTimeline, DrumHit, ClickEvent

# ---------- interne Helfer ----------

def _bpm_to_micro(bpm: float) -> int:
    return int(round(60_000_000 / max(1e-6, float(bpm))))

def _is_pow2(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0

def _emit_conductor(track: mido.MidiTrack, tl: PlaybackTimeline):
    """Schreibt Taktart- und Tempo-Metaevents (beide bei Tick 0)."""
    ts = tl.time_signature
    # MIDI kennt nur Zweierpotenz-Nenner
    if _is_pow2(ts.denominator):
        track.append(mido.MetaMessage("time_signature", numerator=ts.numerator,
                                      denominator=ts.denominator, time=0))
    track.append(mido.MetaMessage("set_tempo", tempo=_bpm_to_micro(tl.tempo_bpm), time=0))

def _emit_drum_events(mt: mido.MidiTrack, hits: Iterable[DrumHit], clicks: Iterable[ClickEvent],
                      channel: int, click_len: int):
    """Schreibt Note-Events als delta-times in einen Track."""
    evs = []
    for h in hits:
        evs.append((h.start_tick, 1, "note_on", h.midi, h.velocity))
        evs.append((h.end_tick, 0, "note_off", h.midi, 0))  # Off zuerst bei gleichem Tick
    for c in clicks:
        evs.append((c.tick, 1, "note_on", c.midi, c.velocity))
        evs.append((c.tick + click_len, 0, "note_off", c.midi, 0))
    evs.sort(key=lambda x: (x[0], x[1]))

    last = 0
    for tick, _, kind, note, vel in evs:
        delta = tick - last
        last = tick
        mt.append(mido.Message(kind, note=note, velocity=vel, channel=channel, time=delta))

# ---------- öffentliche Writer-APIs ----------

def write_midi(tl: PlaybackTimeline, out_path: str, track_name: str = "Darbuka"):
    """
    Eine Datei mit Conductor-Track (Tempo/TS) + Drum-Track.
    """
    mid = mido.MidiFile(ticks_per_beat=tl.ticks_per_beat)

    t_con = mido.MidiTrack()
    t_con.append(mido.MetaMessage("track_name", name="Conductor", time=0))
    _emit_conductor(t_con, tl)
    mid.tracks.append(t_con)

    mt = mido.MidiTrack()
    mt.append(mido.MetaMessage("track_name", name=track_name, time=0))
    _emit_drum_events(mt, tl.hits, tl.clicks, tl.channel, max(1, tl.ticks_per_beat // 8))
    mid.tracks.append(mt)

    mid.save(out_path)

def write_conductor_only(tl: PlaybackTimeline, out_path: str):
    """
    Nur Conductor: Tempo/TS in einer separaten MIDI (kein Notentrack).
    """
    mid = mido.MidiFile(ticks_per_beat=tl.ticks_per_beat)
    t_con = mido.MidiTrack()
    t_con.append(mido.MetaMessage("track_name", name="Conductor", time=0))
    _emit_conductor(t_con, tl)
    mid.tracks.append(t_con)
    mid.save(out_path)
