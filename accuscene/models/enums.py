"""Closed value sets for status, type and condition fields."""

from enum import Enum


class EntityKind(str, Enum):
    """Record families known to the storage layer."""

    USER = "user"
    CASE = "case"
    ACCIDENT = "accident"
    VEHICLE = "vehicle"
    WITNESS = "witness"
    EVIDENCE = "evidence"
    INSURANCE_CLAIM = "insurance_claim"


class UserRole(str, Enum):
    ADMIN = "admin"
    INVESTIGATOR = "investigator"
    ANALYST = "analyst"
    VIEWER = "viewer"


class CaseStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    UNDER_REVIEW = "under_review"
    PENDING_APPROVAL = "pending_approval"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    CLOSED = "closed"


class CasePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CaseAuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"


class WeatherCondition(str, Enum):
    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAIN = "rain"
    HEAVY_RAIN = "heavy_rain"
    SNOW = "snow"
    SLEET = "sleet"
    FOG = "fog"
    HAIL = "hail"
    WIND = "wind"


class RoadCondition(str, Enum):
    DRY = "dry"
    WET = "wet"
    ICY = "icy"
    SNOWY = "snowy"
    MUDDY = "muddy"
    DEBRIS = "debris"
    DAMAGED = "damaged"


class LightCondition(str, Enum):
    DAYLIGHT = "daylight"
    DAWN = "dawn"
    DUSK = "dusk"
    DARK_LIGHTED = "dark_lighted"
    DARK_UNLIGHTED = "dark_unlighted"


class AccidentSeverity(str, Enum):
    """Derived from injury and fatality counts, never stored."""

    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    FATAL = "fatal"


class VehicleType(str, Enum):
    SEDAN = "sedan"
    SUV = "suv"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"
    BUS = "bus"
    BICYCLE = "bicycle"
    PEDESTRIAN = "pedestrian"
    COMMERCIAL = "commercial"
    EMERGENCY = "emergency"
    OTHER = "other"


class DamageSeverity(str, Enum):
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    TOTAL_LOSS = "total_loss"


class WitnessType(str, Enum):
    EYEWITNESS = "eyewitness"
    PASSENGER = "passenger"
    DRIVER = "driver"
    EXPERT = "expert"
    BYSTANDER = "bystander"
    FIRST_RESPONDER = "first_responder"


class WitnessReliability(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    UNKNOWN = "unknown"


class EvidenceType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    PHYSICAL = "physical"
    DIGITAL = "digital"
    FORENSIC = "forensic"
    SURVEILLANCE = "surveillance"
    DASHCAM = "dashcam"
    POLICE_REPORT = "police_report"
    MEDICAL_RECORD = "medical_record"
    OTHER = "other"


class EvidenceSource(str, Enum):
    SCENE = "scene"
    WITNESS = "witness"
    POLICE = "police"
    INSURANCE = "insurance"
    MEDICAL = "medical"
    SURVEILLANCE = "surveillance"
    VEHICLE = "vehicle"
    THIRD_PARTY = "third_party"
    INVESTIGATOR = "investigator"


class CustodyStatus(str, Enum):
    COLLECTED = "collected"
    STORED = "stored"
    ANALYZED = "analyzed"
    TRANSFERRED = "transferred"
    ARCHIVED = "archived"
    DISPOSED = "disposed"


class ClaimStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    ADDITIONAL_INFO_REQUIRED = "additional_info_required"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    DENIED = "denied"
    APPEALED = "appealed"
    SETTLED = "settled"
    CLOSED = "closed"


class ClaimType(str, Enum):
    PROPERTY_DAMAGE = "property_damage"
    BODILY_INJURY = "bodily_injury"
    COMPREHENSIVE = "comprehensive"
    COLLISION = "collision"
    LIABILITY = "liability"
    UNINSURED_MOTORIST = "uninsured_motorist"
    PERSONAL_INJURY_PROTECTION = "personal_injury_protection"
    MEDICAL_PAYMENTS = "medical_payments"


class CommunicationType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    LETTER = "letter"
    MEETING = "meeting"
