"""
Volume level of an audio block, used for speech/silence gating and level display.
"""

from __future__ import annotations

from typing import Any

import numpy as np


def block_rms(block: Any) -> float:
    """RMS of float samples in [-1, 1]. Raises ValueError on non-finite input."""
    arr = np.asarray(block, dtype=np.float64).reshape(-1)
    if arr.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(arr * arr)))
    if not np.isfinite(rms):
        raise ValueError("audio block contains non-finite samples")
    return rms


__all__ = ["block_rms"]
