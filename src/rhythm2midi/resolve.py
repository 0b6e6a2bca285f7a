from __future__ import annotations
from dataclasses import replace
from typing import Dict, List, Set, Tuple
import copy

from .timeline import Measure, MeasureRepeat, SectionRepeat, RepeatMarker

def resolve_similes(measures: List[Measure]) -> Tuple[List[Measure], List[MeasureRepeat]]:
    """
    '%'-Takte werden durch eine tiefe Kopie des Vortakts ersetzt.
    Im ersten Takt gibt es nichts zu kopieren -> das Simile wird zur Pause.
    """
    out: List[Measure] = []
    repeats: List[MeasureRepeat] = []
    for i, measure in enumerate(measures):
        if not any(n.sound == "simile" for n in measure.notes):
            out.append(measure)
            continue
        if i > 0:
            prev = out[i - 1]
            out.append(Measure(copy.deepcopy(prev.notes), prev.total_duration))
            repeats.append(MeasureRepeat(i - 1, [i]))
        else:
            notes = [replace(n, sound="rest") if n.sound == "simile" else n for n in measure.notes]
            out.append(Measure(notes, measure.total_duration))
    return out, repeats

def measure_to_canonical(measure: Measure) -> str:
    # nur Klang + Länge, ohne Punktierung/Bindebögen
    return ",".join(f"{n.sound}:{n.duration_in_sixteenths}" for n in measure.notes)

def covered_measures(repeats: List[RepeatMarker]) -> Set[int]:
    covered: Set[int] = set()
    for rep in repeats:
        if isinstance(rep, SectionRepeat):
            length = rep.end_measure - rep.start_measure + 1
            covered.update(range(rep.start_measure, rep.start_measure + length * (rep.repeat_count + 1)))
        else:
            covered.add(rep.source_measure)
            covered.update(rep.repeat_measures)
    return covered

def detect_identical_measures(measures: List[Measure],
                              existing: List[RepeatMarker]) -> List[RepeatMarker]:
    """Fasst Läufe identischer, noch nicht abgedeckter Takte zu MeasureRepeats zusammen."""
    repeats = list(existing)
    if len(measures) < 2:
        return repeats
    covered = covered_measures(existing)
    i = 0
    while i < len(measures):
        if i in covered:
            i += 1
            continue
        key = measure_to_canonical(measures[i])
        run: List[int] = []
        j = i + 1
        while j < len(measures) and j not in covered and measure_to_canonical(measures[j]) == key:
            run.append(j)
            j += 1
        if run:
            repeats.append(MeasureRepeat(i, run))
            i = j
        else:
            i += 1
    return repeats

def build_source_mapping(repeats: List[RepeatMarker]) -> Dict[int, int]:
    """Takt -> Quelltakt, nur für Geister-Takte."""
    mapping: Dict[int, int] = {}
    for rep in repeats:
        if isinstance(rep, MeasureRepeat):
            for idx in rep.repeat_measures:
                mapping[idx] = rep.source_measure
        else:
            length = rep.end_measure - rep.start_measure + 1
            start = rep.end_measure + 1
            for _ in range(rep.repeat_count):
                for k in range(length):
                    mapping[start + k] = rep.start_measure + k
                start += length
    return mapping
