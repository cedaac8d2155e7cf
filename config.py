"""
Feeder Dashboard Configuration
Topology, colour scheme and transport settings for the substation/pole feeder chain
"""

import os
from typing import Dict, List

# ==================== GRID TOPOLOGY ====================

# Substation carries the highest id; poles are numbered 1..N
SUBSTATION_ID = 5

# Ordered feeder chain. Lines join consecutive entries.
POLES: List[Dict] = [
    {"id": 4, "name": "Pole 4", "coords": (8.561121456920256, 76.857288741109)},
    {"id": 3, "name": "Pole 3", "coords": (8.561406528979926, 76.85769082321161)},
    {"id": 2, "name": "Pole 2", "coords": (8.561952872142548, 76.85843646112221)},
    {"id": 1, "name": "Pole 1", "coords": (8.562446202520935, 76.8590480003807)},
    {"id": SUBSTATION_ID, "name": "Substation", "coords": (8.56333738027111, 76.8599009400019)},
]

# ==================== VISUALS ====================

COLOR = {
    "OK": "#4caf50",
    "WARNING": "#ffc107",
    "NEUTRAL_DARK": "#b58900",
    "FAULT": "#f44336",
    "OFF": "#9e9e9e",
    "OVERVOLT": "#00bfff",   # bright cyan
    "UNDERVOLT": "#1e90ff",  # dimmer blue
}

LINE_STYLE = {
    "default": {"weight": 4, "opacity": 0.85},
    "overvoltage": {"weight": 5, "opacity": 0.95},
    "undervoltage": {"weight": 4, "opacity": 0.8},
}

ICONS = {
    "caution": "./assets/caution.svg",
    "line_fault": "./assets/line-fault.svg",
}

TAGS = {
    "OVERVOLTAGE_POLE": "overvoltage-pole",
    "UNDERVOLTAGE_POLE": "undervoltage-pole",
    "OVERVOLTAGE_LINE": "overvoltage-line",
    "UNDERVOLTAGE_LINE": "undervoltage-line",
    "NEUTRAL_POLE": "pole-neutral",
    "NEUTRAL_LINE": "line-neutral",
}

# ==================== ANALYTICS ====================

ANALYTICS_MAX_DATA_POINTS = int(os.getenv("ANALYTICS_MAX_DATA_POINTS", 50))

# ==================== TELEMETRY FORMATS ====================

SUBSTATION_DEFAULTS = {
    "status": "OK",
    "fault_type": "NIL",
    "breaker_status": "CLOSED",
    "fault_code": 0,
}

POLE_DEFAULTS = {
    "status": "OK",
    "fault_type": "Normal",
}

# Compact pole frame: $$P<pole>,S<substation>,<voltage>,<current>,<errorCode>##
POLE_FRAME_CONFIG = {
    "prefix_length": 2,
    "suffix_length": 2,
    "field_count": 5,
    # Frames are attributed to this pole regardless of the P field
    "fixed_pole_id": 4,
    "error_codes": {
        0: {"fault_type": "Normal", "status": "OK"},
        27: {"fault_type": "Line Fault", "status": "FAULT"},
        10: {"fault_type": "Neutral Break", "status": "FAULT"},
    },
    "unknown_error": {"fault_type": "Unknown", "status": "WARNING"},
}

# ==================== TRANSPORT ====================

TRANSPORT_CONFIG = {
    "topics": {
        "SUBSTATION": "scada/grid/substation1/status",
        "POLES": "scada/grid/pole1/",
        "COMMANDS": "scada/grid/substation1/recharge",
    },
    "recharge_token": "r",
    # Empty URL keeps outbound commands local (logged only)
    "command_url": os.getenv("COMMAND_URL", ""),
    "command_timeout_s": 5,
}

# ==================== DASHBOARD SERVICE ====================

DASHBOARD_CONFIG = {
    "host": os.getenv("DASHBOARD_HOST", "0.0.0.0"),
    "port": int(os.getenv("DASHBOARD_PORT", 8200)),
    "cors_origins": os.getenv("CORS_ORIGINS", "*").split(","),
    "event_log_capacity": 200,
    "simulated_fault": {
        "fault_type": "Overvoltage",
        "voltage": 270,
        "current": 110,
        "breaker_status": "OPEN",
    },
    "sample_data": {
        "voltage_range": (220.0, 240.0),
        "current_range": (50.0, 70.0),
    },
}

# ==================== LOGGING CONFIGURATION ====================

LOGGING_CONFIG = {
    "level": os.getenv("LOG_LEVEL", "INFO"),
    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
}
