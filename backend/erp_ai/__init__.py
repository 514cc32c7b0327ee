"""AI module: intent classification and command parsing for the ERP assistant.

The AI only proposes a structured command. Validation, confirmation of
dangerous actions and execution all happen in erp_agent. If the AI fails,
keyword and regex fallbacks take over.
"""

from .intent_parser import classify_intent
from .command_parser import parse_command, validate_command

__all__ = ["classify_intent", "parse_command", "validate_command"]
