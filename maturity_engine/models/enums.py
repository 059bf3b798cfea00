from enum import Enum

class ResponseKind(str, Enum):
    ANSWERED = "answered"
    UNANSWERED = "unanswered"
    NOT_APPLICABLE = "not_applicable"

class WeightTableKind(str, Enum):
    BINARY = "binary"          # Sim / Não
    GRADUATED = "graduated"    # five-point scale + Não se aplica

class MaturityLevel(str, Enum):
    INICIAL = "inicial"
    BASICO = "basico"
    INTERMEDIARIO = "intermediario"
    APRIMORAMENTO = "aprimoramento"
    APRIMORADO = "aprimorado"

class ScoreKind(str, Enum):
    CONTROL = "control"
    DIAGNOSTIC = "diagnostic"

class CacheNamespace(str, Enum):
    ESSENTIAL = "essential"
    DETAILED = "detailed"
    SCORE = "score"
    DIAGNOSTICS = "diagnostics"

class MutationKind(str, Enum):
    RESPONSE_UPDATED = "response_updated"
    CAPABILITY_LEVEL_UPDATED = "capability_level_updated"
    PROGRAM_REFRESHED = "program_refreshed"

class NodeType(str, Enum):
    DASHBOARD = "dashboard"
    DIAGNOSTIC = "diagnostico"
    CONTROL = "controle"
    MEASURE = "medida"
