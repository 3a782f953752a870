"""
Structural validation of ZPL label documents.

A label is the text between the ``^XA`` start command and the ``^XZ`` end
command. ``^PW`` (print width) and ``^LL`` (label length), in dots, are
optional hints used for bounds checks when present.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

START_COMMAND = "^XA"
END_COMMAND = "^XZ"

_PRINT_WIDTH_RE = re.compile(r"\^PW(\S*)")
_LABEL_LENGTH_RE = re.compile(r"\^LL(\S*)")
_LEADING_INT_RE = re.compile(r"^(\d+)")

EMPTY_PAYLOAD_ERROR = "ZPL payload is empty"
MISSING_START_ERROR = "Missing ^XA start command"
MISSING_END_ERROR = "Missing ^XZ end command"
END_BEFORE_START_ERROR = "^XZ end command appears before ^XA start command"


@dataclass
class ZplValidationResult:
    """
    Outcome of validate_zpl.

    ``ok`` is True iff ``errors`` is empty; warnings never affect it.
    """

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    print_width: Optional[int] = None
    label_length: Optional[int] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def metadata(self) -> Dict[str, Optional[int]]:
        return {
            "start_index": self.start_index,
            "end_index": self.end_index,
            "print_width": self.print_width,
            "label_length": self.label_length,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "errors": list(self.errors), "warnings": list(self.warnings), "metadata": self.metadata}


def _parse_dimension(zpl: str, pattern: re.Pattern, command: str, warnings: List[str]) -> Optional[int]:
    match = pattern.search(zpl)
    if match is None:
        return None

    number = _LEADING_INT_RE.match(match.group(1))
    if number is None:
        warnings.append(f"{command} declared without a numeric value")
        return None
    return int(number.group(1))


def validate_zpl(zpl: Any) -> ZplValidationResult:
    """
    Validate the structure of a ZPL document.

    Args:
        zpl: Label markup

    Returns:
        ZplValidationResult: errors, warnings and parsed metadata
    """
    result = ZplValidationResult()

    if not isinstance(zpl, str) or not zpl.strip():
        result.errors.append(EMPTY_PAYLOAD_ERROR)
        return result

    start_index = zpl.find(START_COMMAND)
    end_index = zpl.rfind(END_COMMAND)
    result.start_index = start_index if start_index >= 0 else None
    result.end_index = end_index if end_index >= 0 else None

    if result.start_index is None:
        result.errors.append(MISSING_START_ERROR)
    if result.end_index is None:
        result.errors.append(MISSING_END_ERROR)
    if result.start_index is not None and result.end_index is not None and result.end_index < result.start_index:
        result.errors.append(END_BEFORE_START_ERROR)

    start_count = zpl.count(START_COMMAND)
    end_count = zpl.count(END_COMMAND)
    if start_count > 1:
        result.warnings.append(f"Multiple ^XA start commands found ({start_count})")
    if end_count > 1:
        result.warnings.append(f"Multiple ^XZ end commands found ({end_count})")

    if result.end_index is not None and zpl[result.end_index + len(END_COMMAND) :].strip():
        result.warnings.append("Content found after final ^XZ end command")

    result.print_width = _parse_dimension(zpl, _PRINT_WIDTH_RE, "^PW", result.warnings)
    result.label_length = _parse_dimension(zpl, _LABEL_LENGTH_RE, "^LL", result.warnings)

    if "^PW" not in zpl:
        result.warnings.append("No ^PW print width declared")
    if "^LL" not in zpl:
        result.warnings.append("No ^LL label length declared")

    return result
