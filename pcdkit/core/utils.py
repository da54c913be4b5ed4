from __future__ import annotations
import numpy as np
import math
import logging

def get_logger(name: str = "pcdkit") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def format_float(value: float, dtype: np.dtype | type = np.float64) -> str:
    """Shortest text that parses back to the same value at the given precision.

    Positional notation for ordinary magnitudes, scientific outside [1e-5, 1e16).
    Always uses '.' as the decimal point.
    """
    v = np.dtype(dtype).type(value)
    if not math.isfinite(float(v)) or v == 0 or 1e-5 <= abs(float(v)) < 1e16:
        return np.format_float_positional(v, unique=True, trim="-")
    return np.format_float_scientific(v, unique=True, trim="-")
