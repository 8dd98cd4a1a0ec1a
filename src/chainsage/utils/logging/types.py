"""logging types: categories for raw json files and the structured entry"""

from enum import Enum
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional


class LogCategory(Enum):
    """log categories for organizing raw json files"""
    AI_CALL = "ai_calls"
    FETCH = "fetches"
    PARSE = "parse"
    ERROR = "errors"


@dataclass
class LogEntry:
    """structured log entry, one per ai call, fetch or parse event"""
    timestamp: str
    category: str
    event_type: str
    operation: str
    target: Optional[str]
    data: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
