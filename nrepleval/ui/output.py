"""
UI output management with color-coded terminal output.
"""

import sys
from typing import Optional, TextIO


TEXT_COLOR_MAPPING = {
    "green": "32;1",
    "red": "31;1",
}


def get_colored_text(text: str, color: str) -> str:
    """
    Get colored text.

    Raises:
        ValueError: If the specified color is not supported
    """
    if color not in TEXT_COLOR_MAPPING:
        raise ValueError(
            f"Unsupported color: {color}. Available colors: {', '.join(TEXT_COLOR_MAPPING.keys())}"
        )
    return f"\u001b[{TEXT_COLOR_MAPPING[color]}m{text}\u001b[0m"


class UIManager:
    """Colored status messages. Errors go to stderr."""

    def __init__(self, color: Optional[bool] = None):
        """
        Args:
            color: Force colors on/off; by default only when stdout is a tty
        """
        self.color = sys.stdout.isatty() if color is None else color

    def success(self, message: str) -> None:
        self._print_colored(message, "green")

    def error(self, message: str) -> None:
        self._print_colored(message, "red", file=sys.stderr)

    def _print_colored(
        self,
        text: str,
        color: str,
        end: str = "\n",
        file: Optional[TextIO] = None,
    ) -> None:
        if self.color:
            try:
                text = get_colored_text(text, color)
            except ValueError:
                # Fall back to plain text if color is invalid
                pass

        print(text, end=end, file=file)
        if file:
            file.flush()
