"""Compression of a per-process sample history into a fixed number of bars.

The history is split into age tiers. Recent samples are drawn one per column;
older samples are averaged into groups whose size grows with age. The output
always has exactly ``width`` bars (or none for an empty history). A bar never
stands for fewer than one real sample: columns that the history cannot fill
are flagged as stretched instead of being interpolated.

Bars are returned newest first.

Two layouts exist:

- Ample history (at least one full tier-0 window of samples, and room to draw
  it): tiers are walked newest first at their fixed ratios. A tier whose
  samples run out early is truncated. Width left over once the history is
  used up refines the coarse tiers, oldest first, without making a tier
  finer than its newer neighbour.
- Virtual tiering (history shorter than tier 0, or too few columns for tier
  0): one effective ratio ``ceil(n / width)`` is computed; the most recent
  columns stay at full resolution while the width allows it and the rest use
  the effective ratio.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from sparktop.errors import InvariantViolation
from sparktop.models import Bar, Tier

DEFAULT_TIERS: tuple[Tier, ...] = (
    Tier(start=0, end=120, ratio=1),
    Tier(start=120, end=300, ratio=4),
    Tier(start=300, end=600, ratio=15),
)


@dataclass(slots=True, frozen=True)
class Segment:
    """A run of consecutive bars sharing one compression ratio."""

    ratio: int
    samples: int
    bars: int


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def validate_tiers(tiers: Sequence[Tier]) -> None:
    """Raise InvariantViolation unless tiers form a contiguous, coarsening table."""
    if not tiers:
        raise InvariantViolation("tier table is empty")
    expected_start = 0
    previous_ratio = 1
    for tier in tiers:
        if tier.ratio < 1:
            raise InvariantViolation(f"tier ratio must be >= 1, got {tier.ratio}")
        if tier.start != expected_start or tier.end <= tier.start:
            raise InvariantViolation(f"tier {tier} does not continue at tick {expected_start}")
        if tier.ratio < previous_ratio:
            raise InvariantViolation("older tiers must not be finer than newer ones")
        expected_start = tier.end
        previous_ratio = tier.ratio


def _gradient(samples: int, bars: int, fine: int) -> list[Segment]:
    """Fit ``samples`` into at most ``bars`` columns, finest ratio ``fine``.

    The newest columns use ``fine``; the remainder use ``ceil(samples / bars)``.
    Every column is backed by at least one sample and the oldest column takes
    the partial group, if any.
    """
    if samples <= 0 or bars <= 0:
        return []
    coarse = _ceil_div(samples, bars)
    if coarse <= fine:
        return [Segment(ratio=fine, samples=samples, bars=_ceil_div(samples, fine))]
    fine_bars = (bars * coarse - samples) // (coarse - fine)
    segments = []
    if fine_bars:
        segments.append(Segment(ratio=fine, samples=fine_bars * fine, bars=fine_bars))
    rest = samples - fine_bars * fine
    segments.append(Segment(ratio=coarse, samples=rest, bars=bars - fine_bars))
    return segments


def _refine(layout: list[list[Segment]], leftover: int) -> int:
    """Spend leftover width on the coarse tiers, oldest first.

    Mutates ``layout`` (one segment list per tier, newest tier first) and
    returns the width that could not be used.
    """
    while leftover > 0:
        progressed = False
        for i in reversed(range(len(layout))):
            current = layout[i]
            floor = layout[i - 1][-1].ratio if i else 1
            if current[-1].ratio <= floor:
                continue
            samples = sum(seg.samples for seg in current)
            used = sum(seg.bars for seg in current)
            refined = _gradient(samples, used + leftover, floor)
            if refined == current:
                continue
            leftover -= sum(seg.bars for seg in refined) - used
            layout[i] = refined
            progressed = True
            if leftover == 0:
                break
        if not progressed:
            break
    return leftover


def _tiered_plan(n: int, width: int, tiers: Sequence[Tier]) -> list[Segment]:
    layout: list[list[Segment]] = []
    remaining_samples = n
    remaining_width = width
    for tier in tiers:
        if remaining_samples == 0 or remaining_width == 0:
            break
        samples = min(remaining_samples, tier.span)
        bars = _ceil_div(samples, tier.ratio)
        if bars > remaining_width:
            bars = remaining_width
            samples = bars * tier.ratio
        layout.append([Segment(ratio=tier.ratio, samples=samples, bars=bars)])
        remaining_samples -= samples
        remaining_width -= bars
    if remaining_width:
        _refine(layout, remaining_width)
    return [seg for tier_segments in layout for seg in tier_segments]


def plan(n: int, width: int, tiers: Sequence[Tier] = DEFAULT_TIERS) -> tuple[Segment, ...]:
    """Return the bar layout for ``n`` samples and ``width`` columns, newest first.

    The total of ``Segment.samples`` never exceeds ``n`` and the total of
    ``Segment.bars`` never exceeds ``width``.
    """
    if n < 0:
        raise InvariantViolation(f"history length must be >= 0, got {n}")
    if width < 0:
        raise InvariantViolation(f"width must be >= 0, got {width}")
    validate_tiers(tiers)
    if n == 0 or width == 0:
        return ()

    newest = tiers[0]
    if n >= newest.span and width >= _ceil_div(newest.span, newest.ratio):
        segments = _tiered_plan(n, width, tiers)
    else:
        segments = _gradient(n, width, newest.ratio)

    _check_plan(segments, n, width)
    return tuple(segments)


def _check_plan(segments: Sequence[Segment], n: int, width: int) -> None:
    consumed = 0
    bars = 0
    for seg in segments:
        if seg.ratio < 1:
            raise InvariantViolation(f"computed ratio {seg.ratio} for {seg}")
        if seg.bars != _ceil_div(seg.samples, seg.ratio):
            raise InvariantViolation(f"segment {seg} has empty bars")
        consumed += seg.samples
        bars += seg.bars
    if consumed > n or bars > width:
        raise InvariantViolation(
            f"plan consumes {consumed}/{n} samples in {bars}/{width} bars"
        )


def compress(
    history: Sequence[float],
    width: int,
    tiers: Sequence[Tier] = DEFAULT_TIERS,
) -> list[Bar]:
    """Compress a chronological history (oldest first) into ``width`` bars.

    Args:
        history: Samples in chronological order, newest last.
        width: Number of display columns, >= 0.
        tiers: Age tier table, newest tier first.

    Returns:
        Exactly ``width`` bars, newest first, or an empty list when the
        history is empty. Each bar is the mean of its group of samples and
        carries its segment's nominal ratio. Columns with no samples behind
        them are stretched copies of the oldest real bar.

    Raises:
        InvariantViolation: On negative width or a malformed tier table.
    """
    segments = plan(len(history), width, tiers)
    if not segments:
        return []

    bars: list[Bar] = []
    end = len(history)
    for seg in segments:
        left = seg.samples
        for _ in range(seg.bars):
            size = min(seg.ratio, left)
            group = history[end - size : end]
            bars.append(Bar(value=sum(group) / size, compression_ratio=seg.ratio))
            end -= size
            left -= size

    edge = bars[-1].value
    bars.extend(Bar(value=edge, compression_ratio=1, stretched=True) for _ in range(width - len(bars)))
    return bars
