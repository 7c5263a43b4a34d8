"""Post-collection filtering of log signals built from interpolated strings."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ..models import Signal

INCLUDE = "include"
WARN = "warn"
EXCLUDE = "exclude"
INTERPOLATED_LOG_MODES = (INCLUDE, WARN, EXCLUDE)


def filter_interpolated_logs(signals: Sequence[Signal], mode: str = INCLUDE) -> Tuple[List[Signal], Optional[str]]:
    """Apply ``mode`` to ``signals`` and return ``(signals, warning)``.

    ``include`` keeps everything silently, ``warn`` keeps everything but
    reports the interpolated count, and ``exclude`` drops interpolated logs.
    """
    if mode not in INTERPOLATED_LOG_MODES:
        raise ValueError(f"Unknown interpolated log mode '{mode}'; expected one of {', '.join(INTERPOLATED_LOG_MODES)}")

    interpolated = [signal for signal in signals if _is_interpolated_log(signal)]
    if mode == INCLUDE or not interpolated:
        return list(signals), None
    if mode == WARN:
        return list(signals), (
            f"{len(interpolated)} log signal(s) use string interpolation and can only be matched on their static text"
        )
    kept = [signal for signal in signals if not _is_interpolated_log(signal)]
    return kept, f"Excluded {len(interpolated)} interpolated log signal(s)"


def _is_interpolated_log(signal: Signal) -> bool:
    return signal.is_log and bool(signal.metadata.get("interpolated"))


__all__ = ["EXCLUDE", "INCLUDE", "INTERPOLATED_LOG_MODES", "WARN", "filter_interpolated_logs"]
