"""
Utility helpers for the command line front end.
"""


class TerminalColors:
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    RESET = "\033[0m"


def replace_extension(name: str, old: str, new: str) -> str:
    """Swaps a trailing extension, matching it case-insensitively."""
    if name.lower().endswith(old):
        return name[: -len(old)] + new
    return name + new
