"""Display formatting for trip metrics."""


def format_distance(meters: float) -> str:
    """Meters as "850 m" below 1 km, else "1.25 km"."""
    if meters >= 1000:
        return f"{meters / 1000.0:.2f} km"
    return f"{meters:.0f} m"


def format_speed(speed_mps: float) -> str:
    """m/s as km/h with one decimal."""
    return f"{speed_mps * 3.6:.1f} km/h"


def format_duration(duration_ms: int) -> str:
    """Milliseconds as "MM:SS", or "H:MM:SS" from one hour up."""
    total_s = max(0, int(duration_ms)) // 1000
    hours, rem = divmod(total_s, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours > 0:
        return f"{hours:d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"
