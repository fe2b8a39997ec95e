# ------------------ Serial defaults ------------------
DEFAULT_BAUD = 9600
BAUD_RATES = [300, 1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200, 230400, 460800, 921600]
DATA_BITS = [5, 6, 7, 8, 9]           # offered by the UI
SUPPORTED_DATA_BITS = (5, 6, 7, 8)    # accepted when opening a port
STOP_BITS = [1, 2]
NO_PORT = "-"                         # placeholder when no device is selected
READ_TIMEOUT_S = 0.05                 # bounds stop-flag latency in the reader thread

# ---------------- Start trigger ----------------
DEFAULT_START_DELAY_MS = 1000
DEFAULT_START_MESSAGE = "Start"

# ---------------- Retention ----------------
STORED_DURATION_S = 60.0   # seconds of numeric history kept behind the latest sample
STORED_LINES = 512         # console lines kept (oldest dropped first)

# ---------------- UI ----------------
TARGET_HZ = 50             # UI refresh Hz (not serial rate)
DEFAULT_WINDOW_S = 5.0
DEFAULT_Y_LIMITS = (0.0, 1.0)
PLOT_HEIGHT = 256
CONSOLE_HEIGHT = 192
WARNING_SECONDS = 3.0
ERROR_SECONDS = 5.0

# ---------------- Plot Options ----------------
LINE_WIDTH = 2
SLOT_HUE_STEP = 0.15
SLOT_SATURATION = 0.8
SLOT_VALUE = 0.8
MARKER_COLOR = (200, 200, 200)
