from app.validation.quality import QualityGate, QualityVerdict
from app.validation.repair import parse_oracle_json, repair
from app.validation.schema import validate

__all__ = ["QualityGate", "QualityVerdict", "parse_oracle_json", "repair", "validate"]
