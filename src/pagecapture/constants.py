"""Shared constants for inspector messages, overlays and persisted state."""

# Relay actions.
ACTION_START = "startInspector"
ACTION_STOP = "stopInspector"
ACTION_TOGGLE = "toggleInspector"
ACTION_ELEMENT_SELECTED = "elementSelected"

# Relay endpoints.
PANEL_ENDPOINT = "panel"
BROKER_ENDPOINT = "broker"

STATUS_STARTED = "Inspector started"
STATUS_STOPPED = "Inspector stopped"
STATUS_TOGGLED = "Inspector toggled"

REFRESH_PAGE_MESSAGE = "Could not connect to the page. Please refresh the tab and try again."
EMPTY_SELECTION_MESSAGE = "Please select at least one page with captured elements first."

# Storage keys.
DOM_CONTEXT_KEY = "domContext"
FLOW_ORDER_KEY = "flowOrder"

# Every class added by the highlight controller starts with this prefix.
INSTRUMENTATION_CLASS_PREFIX = "inspector-"
HOVER_CLASS = "inspector-highlight"
SELECTED_CLASS = "inspector-selected"
STYLE_ELEMENT_ID = "__pagecapture_style"
OVERLAY_KEY_ATTR = "data-pagecapture-key"

OVERLAY_STYLE = """
.inspector-highlight {
  position: absolute;
  background: rgba(130, 200, 255, 0.3);
  border: 2px solid #4CAF50;
  pointer-events: none;
  z-index: 10000;
  transition: all 0.2s ease;
}
.inspector-selected {
  position: absolute;
  background: rgba(76, 175, 80, 0.2);
  border: 2px solid #4CAF50;
  pointer-events: none;
  z-index: 9999;
  animation: inspector-pulse 0.6s ease-out 1;
}
@keyframes inspector-pulse {
  0% { background-color: rgba(76, 175, 80, 0.4); }
  100% { background-color: rgba(76, 175, 80, 0.2); }
}
"""

CURSOR_ACTIVE = "crosshair"
CURSOR_DEFAULT = "default"

# Input event kinds understood by the inspector.
EVENT_POINTER_MOVE = "pointermove"
EVENT_POINTER_LEAVE = "pointerleave"
EVENT_CLICK = "click"
EVENT_KEYDOWN = "keydown"

INSPECTOR_EVENT_KINDS = (
    EVENT_POINTER_MOVE,
    EVENT_POINTER_LEAVE,
    EVENT_CLICK,
    EVENT_KEYDOWN,
)

CAPTURED_ELEMENT_KEYS = (
    "tag",
    "id",
    "name",
    "type",
    "classes",
    "text",
    "xpath",
    "cssSelector",
    "markup",
    "pageUrl",
)

# Container for overlays mirrored into a live browser page.
LIVE_LAYER_ID = "__pagecapture_overlay_layer"
INSTRUMENTATION_IDS = (STYLE_ELEMENT_ID, LIVE_LAYER_ID)
