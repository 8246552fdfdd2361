import math
from typing import Optional, Tuple

import numpy as np

RGB = Tuple[int, int, int]

BACKGROUND: RGB = (0, 0, 50)
WHITE: RGB = (255, 255, 255)

MAX_MILKY_WAY_LEVEL = 5


def milky_way_colour(level: int) -> RGB:
    # Denser bands are paler: level 0 -> 50, level 5 -> 250.
    brightness = int(round(level / MAX_MILKY_WAY_LEVEL * 200 + 50))
    return (brightness, brightness, 250)


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)


def constellation_colour(rng: np.random.Generator) -> RGB:
    r, g, b = rng.random(3)
    return (int(round(r * 200 + 50)), int(round(g * 200 + 50)), int(round(b * 50 + 50)))


def bv_to_rgb(bv: float) -> RGB:
    # Approximate star colour from B-V index, via a black-body temperature.
    bv = max(-0.4, min(2.0, bv))
    t = 4600.0 * (1.0 / (0.92 * bv + 1.7) + 1.0 / (0.92 * bv + 0.62))
    return _temp_to_rgb(t)


def _temp_to_rgb(kelvin: float) -> RGB:
    temp = kelvin / 100.0
    if temp <= 66:
        r = 255.0
        g = 99.4708025861 * math.log(temp) - 161.1195681661
        b = 0.0 if temp <= 19 else 138.5177312231 * math.log(temp - 10) - 305.0447927307
    else:
        r = 329.698727446 * math.pow(temp - 60, -0.1332047592)
        g = 288.1221695283 * math.pow(temp - 60, -0.0755148492)
        b = 255.0
    return (_channel(r), _channel(g), _channel(b))


def _channel(value: float) -> int:
    return int(max(0.0, min(255.0, value)))
