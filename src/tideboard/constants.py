STATE_DIR_NAME = ".tideboard"
CONFIG_FILE = "config.yaml"
SNAPSHOT_FILE = "board.yaml"
SNAPSHOT_LOCK_FILE = "board.lock"
SNAPSHOT_VERSION = 1
WINDOWS_LOCK_BYTES = 4096

ENTRY_COLUMN_ID = "backlog"
TERMINAL_COLUMN_ID = "done"

# (id, display name, fixed)
DEFAULT_COLUMNS = (
    (ENTRY_COLUMN_ID, "backlog", True),
    ("to-do", "to do", False),
    ("in-progress", "in progress", False),
    (TERMINAL_COLUMN_ID, "done", True),
)

DEFAULT_BLOCK_NAME = "Random"
DEFAULT_BLOCK_COLOR = "#5a6c7d"

WEEKDAY_TAGS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
