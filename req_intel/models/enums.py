from enum import Enum


class Criticality(str, Enum):
    MUST = "MUST"
    SHOULD = "SHOULD"
    MAY = "MAY"


class ImportRoute(str, Enum):
    DIRECT_JSON = "DIRECT_JSON"
    REPAIRED_JSON = "REPAIRED_JSON"
    AI_EXTRACTION = "AI_EXTRACTION"
    FILES = "FILES"
    SAMPLE = "SAMPLE"


class ModelTask(str, Enum):
    EXTRACT = "EXTRACT"
    CHAT = "CHAT"
    SUMMARY = "SUMMARY"
    AUDIT = "AUDIT"


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


class AuditAction(str, Enum):
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditType(str, Enum):
    DUPLICATE = "DUPLICATE"
    VAGUE = "VAGUE"
    SPELLING = "SPELLING"
    CONSISTENCY = "CONSISTENCY"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
