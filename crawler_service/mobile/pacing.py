from __future__ import annotations

import random
from typing import Optional

# Inclusive millisecond bounds per pacing category.
PACING_RANGES_MS: dict[str, tuple[int, int]] = {
    "very short": (150, 350),
    "short": (300, 600),
    "medium": (600, 1500),
    "long": (1800, 3500),
    "very long": (4000, 10000),
}


def random_pause_ms(category: str = "medium", *, rng: Optional[random.Random] = None) -> int:
    """
    Sample a human-looking pause length for `category`.

    Unknown categories raise instead of silently falling back so that a typo
    in a crawl step cannot change its pacing.
    """
    if category not in PACING_RANGES_MS:
        raise ValueError(f"Unknown pacing category {category!r}; expected one of {list(PACING_RANGES_MS)}")
    low, high = PACING_RANGES_MS[category]
    return (rng or random).randint(low, high)
