"""Application-level constants."""

__all__ = [
    "APP_NAME",
    "APP_DISPLAY_NAME",
    "LOGGER_NAME",
    "EXECUTABLE_NAME",
    "FILE_ENCODING_UTF8",
    "CHAR_COMMA",
]

# Application constants
APP_NAME = "waasabi-matrix"
APP_DISPLAY_NAME = "Waasabi Matrix"
LOGGER_NAME = "Waasabi"

EXECUTABLE_NAME = "waasabi"

# File encoding
FILE_ENCODING_UTF8 = "utf-8"

# String literals and characters
CHAR_COMMA = ", "
