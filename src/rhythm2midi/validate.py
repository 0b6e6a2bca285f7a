from __future__ import annotations
from typing import List, Optional, Tuple
from .timeline import Measure

def validate_measures(measures: List[Measure], ticks_per_measure: int) -> Tuple[bool, Optional[str]]:
    """
    Alle Takte außer dem letzten müssen exakt voll sein, der letzte darf
    kürzer, aber nie länger sein. Meldet nur den ersten Verstoß.
    """
    if not measures:
        return True, None
    for i, m in enumerate(measures[:-1]):
        if m.total_duration != ticks_per_measure:
            return False, f"Measure {i + 1} has {m.total_duration} ticks, expected {ticks_per_measure}."
    last = measures[-1]
    if last.total_duration > ticks_per_measure:
        return False, (f"Measure {len(measures)} has {last.total_duration} ticks, "
                       f"expected at most {ticks_per_measure}.")
    return True, None
