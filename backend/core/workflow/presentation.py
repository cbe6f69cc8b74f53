import json
from typing import Any, Dict, List, Tuple
from models.report import RiskLevel

# Checked in order; the first tier with a matching keyword wins.
RISK_RULES: List[Tuple[RiskLevel, Tuple[str, ...]]] = [
    (RiskLevel.high, ("high", "critical", "severe")),
    (RiskLevel.medium, ("elevated", "moderate", "abnormal")),
]

def derive_risk_level(key_findings: Dict[str, Any]) -> RiskLevel:
    """
    Scans the serialized findings case-insensitively for severity keywords.
    Plain substring match, so "Highly elevated" counts as high.
    """
    blob = json.dumps(key_findings or {}).lower()
    for level, keywords in RISK_RULES:
        if any(kw in blob for kw in keywords):
            return level
    return RiskLevel.low

def _render_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)

def format_key_findings(key_findings: Dict[str, Any]) -> List[str]:
    """Renders each finding as '<key>: <value>'."""
    return [f"{key}: {_render_value(value)}" for key, value in (key_findings or {}).items()]
