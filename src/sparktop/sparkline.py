"""Glyph rendering of compressed history bars, plus value formatting.

A bar's height comes from its value; its colour comes from its compression
ratio so that full-resolution, 4x and 15x columns are told apart at a glance.
Stretched bars are drawn as dim dots.
"""

from collections.abc import Sequence

from rich.text import Text

from sparktop.models import Bar, Metric

BLOCKS = " ▁▂▃▄▅▆▇█"
LEVELS = len(BLOCKS) - 1
STRETCH_GLYPH = "·"
# Fractions below this are drawn blank
BLANK_BELOW = 0.03

# Dracula palette, finest to coarsest
RATIO_STYLES: tuple[tuple[int, str], ...] = (
    (1, "#50fa7b"),  # green - full resolution
    (4, "#8be9fd"),  # cyan - up to 4 samples per column
    (15, "#bd93f9"),  # purple - up to 15 samples per column
)
COARSEST_STYLE = "#6272a4"
STRETCH_STYLE = "dim"


def level_for(fraction: float) -> int:
    """Scale a 0..1 fraction to a glyph level 0..LEVELS.

    Values above 1 clamp to the full block (CPU can exceed one core).
    """
    if fraction < BLANK_BELOW:
        return 0
    fraction = min(fraction, 1.0)
    return max(1, min(LEVELS, round(fraction * LEVELS)))


def ratio_style(ratio: int) -> str:
    """Colour for a compression ratio."""
    for limit, style in RATIO_STYLES:
        if ratio <= limit:
            return style
    return COARSEST_STYLE


def scale_for(metric: Metric, bars: Sequence[Bar]) -> float:
    """Value drawn as a full block for this metric.

    CPU is scaled to one core. Other metrics scale to the largest bar.
    """
    if metric is Metric.CPU:
        return 1.0
    peak = max((bar.value for bar in bars if not bar.stretched), default=0.0)
    return peak if peak > 0 else 1.0


def render_bars(
    bars: Sequence[Bar],
    max_value: float,
    direction: str = "rtl",
) -> Text:
    """Render bars (newest first) as a one-line Rich Text.

    Args:
        bars: Output of the compression engine, newest first.
        max_value: Value drawn as a full block.
        direction: "rtl" puts the newest bar on the right, "ltr" on the left.
    """
    text = Text()
    ordered = list(reversed(bars)) if direction == "rtl" else list(bars)
    for bar in ordered:
        if bar.stretched:
            text.append(STRETCH_GLYPH, style=STRETCH_STYLE)
            continue
        glyph = BLOCKS[level_for(bar.value / max_value if max_value > 0 else 0.0)]
        text.append(glyph, style=ratio_style(bar.compression_ratio))
    return text


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_rate(rate: float) -> str:
    """Format a bytes/s rate; near-zero rates render as '_'."""
    if rate < 0.05:
        return "_"
    return f"{format_bytes(rate).strip()}/s"


def format_cpu(fraction: float) -> str:
    """Format a CPU fraction (1.0 = one core) as a percentage."""
    return f"{fraction * 100:5.1f}"


def format_mib(mib: float) -> str:
    """Format a size in MiB."""
    return format_bytes(mib * 1024 * 1024)
