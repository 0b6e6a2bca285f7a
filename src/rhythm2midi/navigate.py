from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Set, Tuple

from .timeline import ParsedRhythm, MeasureDefinition, SectionRepeat
from .util.time import ticks_per_measure

@dataclass
class VisualPosition:
    index: int
    visual_measure_start_tick: int
    logical_measure_start_tick: int
    local_tick: int

def _width(total: int, capacity: int) -> int:
    # Renderer zeichnet jeden Takt mindestens eine volle Taktlänge breit
    return max(total, capacity)

def find_measure_index_at_tick(parsed: ParsedRhythm, tick: int) -> Tuple[int, int]:
    """(index, measure_start_tick) im expandierten Zeitstrahl; hinter dem Ende -> Anhängen."""
    if not parsed.measures or tick < 0:
        return 0, 0
    capacity = ticks_per_measure(parsed.time_signature)
    current = 0
    for i, measure in enumerate(parsed.measures):
        width = _width(measure.total_duration, capacity)
        if current <= tick < current + width:
            return i, current
        current += width
    return len(parsed.measures), current

def hidden_measure_indices(parsed: ParsedRhythm) -> Set[int]:
    """Geister-Wiedergaben von Abschnitts-Wiederholungen (nur einmal gezeichnet)."""
    hidden: Set[int] = set()
    for rep in parsed.repeats or []:
        if isinstance(rep, SectionRepeat) and rep.repeat_count > 0:
            block = rep.end_measure - rep.start_measure + 1
            hidden.update(range(rep.end_measure + 1, rep.end_measure + 1 + block * rep.repeat_count))
    return hidden

def find_measure_index_from_visual_tick(parsed: ParsedRhythm, visual_tick: int) -> VisualPosition:
    """
    Visueller Tick (Klick im komprimierten Notenbild) -> logischer Takt.
    Versteckte Takte verbrauchen keine visuelle, aber logische Zeit.
    """
    if not parsed.measures:
        return VisualPosition(0, 0, 0, 0)
    capacity = ticks_per_measure(parsed.time_signature)
    hidden = hidden_measure_indices(parsed)
    visual = 0
    logical = 0
    for i, measure in enumerate(parsed.measures):
        width = _width(sum(n.duration_in_sixteenths for n in measure.notes), capacity)
        if i in hidden:
            logical += width
            continue
        if visual <= visual_tick < visual + width:
            return VisualPosition(i, visual, logical, visual_tick - visual)
        visual += width
        logical += width

    last_visible = len(parsed.measures) - 1
    while last_visible > 0 and last_visible in hidden:
        last_visible -= 1
    return VisualPosition(last_visible, visual, logical, 0)

def edit_target(parsed: ParsedRhythm, measure_index: int) -> Optional[MeasureDefinition]:
    """
    Definition, an die eine Bearbeitung von measure_index umgeleitet wird.
    Geister (Abschnitt, |xN, Simile, erkannte Wiederholung) -> Definition des Quelltakts.
    """
    if not 0 <= measure_index < len(parsed.measure_mapping):
        return None
    src = parsed.measure_source_mapping.get(measure_index, measure_index)
    if 0 <= src < len(parsed.measure_mapping):
        return parsed.measure_mapping[src]
    return parsed.measure_mapping[measure_index]

def is_ghost_measure(parsed: ParsedRhythm, measure_index: int) -> bool:
    return measure_index in parsed.measure_source_mapping
