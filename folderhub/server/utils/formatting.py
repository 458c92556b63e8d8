_UNITS = "KMGTPE"


def format_file_size(size: int) -> str:
    """Human readable 1024-based size, e.g. 512 B, 1.5 KB, 2.0 MB."""
    if size < 1024:
        return f"{size} B"
    exp = 0
    value = float(size)
    while value >= 1024 and exp < len(_UNITS):
        value /= 1024
        exp += 1
    return f"{value:.1f} {_UNITS[exp - 1]}B"
