"""
Representative path sampling.

Reduces a large path set to a bounded subset for presentation. The four
canonical paths are always kept; the rest of the budget is filled by walking
the remaining paths in ascending final-magnitude order at a fixed stride, so
the sample spans the whole outcome range.
"""

import logging
from typing import List, Optional, Sequence

from .monte_carlo import SimulationResult
from .simulator import SimulationPath

logger = logging.getLogger(__name__)

DEFAULT_NUM_SAMPLES = 50


def sample_paths(
    paths: Sequence[SimulationPath],
    canonical: Sequence[Optional[SimulationPath]],
    num_samples: int = DEFAULT_NUM_SAMPLES,
) -> List[SimulationPath]:
    """
    Pick at most ``num_samples`` paths, canonical paths first.

    If ``paths`` already fits it is returned unchanged (as a list). When there
    are more distinct canonical paths than ``num_samples`` all of them are
    still returned.
    """
    if num_samples < 1:
        raise ValueError(f"num_samples must be at least 1, got {num_samples}")
    if len(paths) <= num_samples:
        return list(paths)

    keep_ids = []
    for path in canonical:
        if path is not None and path.id not in keep_ids:
            keep_ids.append(path.id)

    sampled = [p for p in paths if p.id in keep_ids]
    remaining_slots = num_samples - len(sampled)
    if remaining_slots <= 0:
        return sampled

    remainder = sorted((p for p in paths if p.id not in keep_ids), key=lambda p: p.final_magnitude)
    stride = max(1, len(remainder) // remaining_slots)

    for path in remainder[::stride]:
        if len(sampled) >= num_samples:
            break
        sampled.append(path)

    logger.debug("Sampled %d of %d paths (stride %d)", len(sampled), len(paths), stride)
    return sampled


def sample_representative_paths(
    result: SimulationResult, num_samples: int = DEFAULT_NUM_SAMPLES
) -> List[SimulationPath]:
    return sample_paths(result.paths, result.canonical_paths, num_samples)
