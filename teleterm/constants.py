"""Constants used across teleterm.

Wire-level names are fixed by the terminal host and must not change.
"""

# Host defaults
DEFAULT_HOST_URL = "ws://localhost:8129"
DEFAULT_TERMINAL_TYPE = "bash"
DEFAULT_OWNER = "Agent"
DEFAULT_COLOR = "#00ff00"
DEFAULT_CONFIG_PATH = "~/.teleterm/teleterm.yml"
CONFIG_PATH_ENV = "TELETERM_CONFIG"

# Protocol timing
SETTLE_DELAY_S = 0.1  # Wait after spawn confirmation before the first resize
OPEN_TIMEOUT_S = 10.0

# Wire message types
MSG_SPAWN = "spawn"
MSG_RESIZE = "resize"
MSG_INPUT = "command"
MSG_INPUT_ALT = "input"
MSG_TERMINAL_SPAWNED = "terminal-spawned"
MSG_TERMINAL_OUTPUT = "terminal-output"
MSG_OUTPUT_LEGACY = "output"

# Requested-name suffix
NAME_SUFFIX_LENGTH = 9
NAME_SUFFIX_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

# Diagnostic log shipping
CONSOLE_LOG_PATH = "/api/console-log"
LOG_FLUSH_DELAY_S = 0.1
LOG_POST_TIMEOUT_S = 2.0

# Emulator fallback geometry when the rendering side cannot report one
FALLBACK_COLS = 80
FALLBACK_ROWS = 24
