# ABOUTME: Human-readable formatting for durations and file sizes.
# ABOUTME: Shared by the CLI tables and detail views.

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_duration(seconds: int | None) -> str:
    """Format seconds as "12h 05m" or "45m"; "Unknown" when missing or not positive."""
    if seconds is None or seconds <= 0:
        return "Unknown"

    hours, remainder = divmod(int(seconds), 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m"


def format_file_size(size: int | None) -> str:
    """Format a byte count as "1.50 GB"; whole bytes have no decimals."""
    if size is None or size < 0:
        return "Unknown"

    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    if unit == 0:
        return f"{int(value)} B"
    return f"{value:.2f} {_SIZE_UNITS[unit]}"
