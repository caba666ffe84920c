"""Line types drawn on the farm map and their default styles."""
from typing import Any, Dict, Optional

LINE_TYPES: Dict[str, Dict[str, Any]] = {
    "swale": {
        "label": "Swale",
        "style": {"color": "#0ea5e9", "width": 3, "opacity": 0.8, "arrowDirection": "none"},
    },
    "flow_path": {
        "label": "Flow Path",
        "style": {"color": "#06b6d4", "width": 2, "dashArray": [4, 2], "opacity": 0.7, "arrowDirection": "forward"},
    },
    "fence": {
        "label": "Fence",
        "style": {"color": "#71717a", "width": 2, "dashArray": [1, 3], "opacity": 0.6, "arrowDirection": "none"},
    },
    "hedge": {
        "label": "Hedge Row",
        "style": {"color": "#22c55e", "width": 3, "opacity": 0.7, "arrowDirection": "none"},
    },
    "contour": {
        "label": "Contour Line",
        "style": {"color": "#78716c", "width": 1, "opacity": 0.5, "arrowDirection": "none"},
    },
    "custom": {
        "label": "Custom",
        "style": {"color": "#64748b", "width": 2, "opacity": 0.7, "arrowDirection": "none"},
    },
}


def default_style(line_type: Optional[str]) -> Dict[str, Any]:
    config = LINE_TYPES.get(line_type or "custom", LINE_TYPES["custom"])
    return dict(config["style"])


def resolve_style(line_type: Optional[str], style: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Default style for the line type with any caller-provided keys on top."""
    resolved = default_style(line_type)
    if style:
        resolved.update(style)
    return resolved
