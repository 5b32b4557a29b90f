"""Authentication subsystem: page analysis, operator channel and login state machine."""

from .analyzer import AuthAnalyzer, heuristic_analysis
from .models import Analysis, AnalysisSource, AuthAnalysis, AuthOutcome, AuthResult, AuthState, MFAInfo
from .operator import ConsoleOperator, OperatorChannel, OperatorReply, parse_operator_reply
from .orchestrator import AuthOrchestrator

__all__ = [
    # Models
    "Analysis",
    "AnalysisSource",
    "AuthAnalysis",
    "AuthOutcome",
    "AuthResult",
    "AuthState",
    "MFAInfo",
    # Components
    "AuthAnalyzer",
    "AuthOrchestrator",
    "ConsoleOperator",
    "OperatorChannel",
    "OperatorReply",
    "heuristic_analysis",
    "parse_operator_reply",
]
