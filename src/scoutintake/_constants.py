"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Row addressing (one row per driver station per match, row 1 = headers)
# ------------------------------------------------------------------

BASE_OFFSET = 2
BLOCK_SIZE = 6
PIT_ROW_ABSENT = 0

STATION_OFFSETS: dict[str, int] = {
    "red1": 0,
    "red2": 1,
    "red3": 2,
    "blue1": 3,
    "blue2": 4,
    "blue3": 5,
}

# Scouting clients emit a single placeholder cycle of this type for "did nothing".
NONE_CYCLE_TAG = "None"

# Park status codes above this value mean a climb tier was achieved.
PARK_ACHIEVED_THRESHOLD = 3

PARK_STATUS_LABELS: dict[int, str] = {
    0: "Didn't Attempt to Park",
    1: "Failed Attempted to Park",
    2: "Failed Attempted Shallow Climb",
    3: "Failed Attempted Deep Climb",
    4: "Parked in the Barge",
    5: "Climbed Shallow Cage",
    6: "Climbed Deep Cage",
}

# Cycle categories in output-column order.
CYCLE_CATEGORIES: tuple[str, ...] = (
    "Trough/Coral Level 1",
    "Coral Level 2",
    "Coral Level 3",
    "Coral Level 4",
    "Processor",
    "Net",
    "Shuttle",
)

NOT_APPLICABLE = "N/A"

# ------------------------------------------------------------------
# Output collaborator
# ------------------------------------------------------------------

SHEETS_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"
DEFAULT_MATCH_TAB = "RawData"
DEFAULT_PIT_TAB = "PitScouting"
MAX_MATCH_FILL_SPAN = 50
