"""All magic numbers and configuration constants."""

DOCUMENT_VERSION = "1"                # "version" field of every exported document
UNSET_MS = 0                          # start == end == 0 means "not yet timed"
UNASSIGNED_VOICE = 0                  # token voice id before recording
MODES = ("blocks", "lines", "words", "chars")  # coarse → fine, linear progression
ALWAYS_UNLOCKED = ("blocks", "lines")
POSITIONS = ("C", "L", "R", "U", "D", "TL", "TR", "DL", "DR")
DEFAULT_POSITION = "C"                # block position and new voice position
DEFAULT_VOICE_COLOR = "#87CEEB"       # voice created by segmentation
NEW_VOICE_COLOR = "#FFFFFF"           # voice added by the operator
PLAYBACK_SPEEDS = (1.5, 1.0, 0.75, 0.5, 0.25)
PROGRESS_TICK_MS = 50                 # host sampling interval for progress rendering
CONTEXT_WINDOW = {"blocks": 1, "lines": 2}  # tokens shown above/below the active one
DEFAULT_EXPORT_NAME = "karaoke"       # export filename stem without an audio file
OUTPUT_DIR = "output"
VERSION = "0.1.0"
