"""
Per-path random sources.

Each simulated path owns its own generator; nothing here is shared between
paths, so paths can run in any order or in separate processes.
"""

import random

LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MODULUS = 2 ** 31 - 1

# Distance between the seeds of consecutive paths
PATH_SEED_STRIDE = 12345


class LCGRandom:
    """Linear-congruential generator: ``s = (s * 1103515245 + 12345) mod (2**31 - 1)``."""

    __slots__ = ("state",)

    def __init__(self, seed: int):
        self.state = int(seed) % LCG_MODULUS

    def random(self) -> float:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.state / LCG_MODULUS


def path_seed(index: int, base_seed: int = 0) -> int:
    return base_seed + index * PATH_SEED_STRIDE


def make_path_rng(index: int, base_seed: int = 0, deterministic: bool = True):
    """Generator for path ``index``: seeded LCG, or a fresh entropy-seeded ``random.Random``."""
    if deterministic:
        return LCGRandom(path_seed(index, base_seed))
    return random.Random()
