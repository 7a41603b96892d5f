"""
Text rendering helpers for the CLI: times, dates, the waveform strip and summaries.
"""

import math
from datetime import datetime

from .models import Track

WAVEFORM_BARS = 100
_BAR_GLYPHS = " ▁▂▃▄▅▆▇█"


def format_time(seconds: float) -> str:
    """Format seconds as M:SS."""
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def format_date(value: str) -> str:
    """ISO timestamp -> 'Mar 05, 2025, 14:07'. Unparseable input is returned as-is."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%b %d, %Y, %H:%M")


def waveform_bars(bar_count: int = WAVEFORM_BARS, height: float = 1.0) -> list[float]:
    """
    Bar heights of the decorative waveform.

    Deterministic and independent of the audio: it only dresses up the track.
    """
    bars = []
    for i in range(bar_count):
        seed = math.sin(i * 0.1) * math.cos(i * 0.3) * math.sin(i * 0.5)
        bars.append((seed + 1) / 2 * (height * 0.8))
    return bars


def render_waveform(track: Track, width: int = 60) -> str:
    """Two-line strip: waveform glyphs, and a marker line with | at each breakpoint."""
    top = len(_BAR_GLYPHS) - 1
    wave = "".join(_BAR_GLYPHS[min(top, int(b / 0.8 * top))] for b in waveform_bars(width))
    markers = [" "] * width
    for t in track.breakpoints:
        col = min(width - 1, int(t / track.duration * width))
        markers[col] = "|"
    return f"{wave}\n{''.join(markers)}"


def describe_track(track: Track) -> str:
    points = ", ".join(format_time(t) for t in track.breakpoints) or "no breakpoints"
    return (
        f"{track.file_name} [{format_time(track.duration)}] "
        f"{track.status.value} - {len(track.breakpoints)} breakpoint(s): {points}"
    )


def format_summary(summary: dict[str, float]) -> str:
    return (
        f"Total Tracks: {int(summary['tracks'])}\n"
        f"Total Duration: {format_time(summary['duration'])}\n"
        f"Total Breakpoints: {int(summary['breakpoints'])}"
    )
