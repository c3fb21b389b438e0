"""
Type aliases for MacroPolicy.

Timelines and grid axes are plain NumPy ``float64`` vectors; candidate
orderings are ``intp`` index vectors.
"""

from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray

Float1D: TypeAlias = NDArray[np.float64]
Bool1D: TypeAlias = NDArray[np.bool_]
Idx1D: TypeAlias = NDArray[np.intp]

__all__ = [
    "Float1D",
    "Bool1D",
    "Idx1D",
]
