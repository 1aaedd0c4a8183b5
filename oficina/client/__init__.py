from .car_parts import PART_LABELS, detect_car_part, part_label
from .marker_store import DamageMarkerStore, Marker, UndescribedMarkerError, is_describable
from .api_client import InspectionClient, ApiError

__all__ = [
    "PART_LABELS",
    "detect_car_part",
    "part_label",
    "DamageMarkerStore",
    "Marker",
    "UndescribedMarkerError",
    "is_describable",
    "InspectionClient",
    "ApiError"
]
