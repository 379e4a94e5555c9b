import math
from typing import Optional

def parse_decimal(value) -> Optional[float]:
    """Parse user/stored numeric input accepting '.' or ',' as decimal separator.

    Returns None for blank, None, non-numeric or non-finite input; never raises.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        text = str(value).strip().replace(",", ".", 1)
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    if not math.isfinite(num):
        return None
    return num

def to_num(value) -> float:
    num = parse_decimal(value)
    return 0.0 if num is None else num

def round2(value: float) -> float:
    return round(float(value), 2)
