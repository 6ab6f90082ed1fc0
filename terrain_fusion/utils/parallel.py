"""
Parallel-for helpers for grid stages.

Work is split into disjoint bands of rows (or columns). Each band is
written by exactly one worker, so the shared output arrays need no locks.
NumPy, SciPy and scikit-learn release the GIL inside their kernels, which
is what makes threads worthwhile here.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from ..config.config import get_settings


def bands(length: int, band_size: int) -> List[slice]:
    """Split ``range(length)`` into consecutive slices of at most ``band_size``."""
    band_size = max(1, int(band_size))
    return [slice(start, min(start + band_size, length)) for start in range(0, length, band_size)]


def run_bands(
    work: Callable[[slice], None],
    length: int,
    band_size: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> None:
    """
    Run ``work`` over every band of ``range(length)``.

    Args:
        work: Callable receiving one band slice; writes its own output rows
        length: Number of rows (or columns) to cover
        band_size: Rows per band, defaults to the configured ``band_rows``
        max_workers: Thread count, defaults to the configured ``max_workers``
    """
    settings = get_settings()
    band_size = band_size or settings.band_rows
    max_workers = max_workers or settings.max_workers

    parts = bands(length, band_size)
    if max_workers == 1 or len(parts) == 1:
        for part in parts:
            work(part)
        return

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        # list() re-raises the first worker exception
        list(pool.map(work, parts))
