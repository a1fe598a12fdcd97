from typing import Any, Optional


def parse_ratio(value: Any) -> Optional[float]:
    """Parse ffprobe ratio strings like '30000/1001' or plain numbers."""
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    try:
        if "/" in s:
            num_s, den_s = s.split("/", 1)
            den = float(den_s)
            if den == 0:
                return None
            v = float(num_s) / den
        else:
            v = float(s)
    except ValueError:
        return None
    return v if v > 0 else None


def to_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def quality_label(height: int) -> str:
    if height >= 1080:
        return "Full HD"
    if height >= 720:
        return "HD"
    return "SD"
