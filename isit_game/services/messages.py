"""
Message templating for editor-authored feedback text.

Metric tokens ([[DQ]], [[AQ]], [[PointTotal]], [[LastDQ]], [[LastScore]])
are substituted case-insensitively; anything else between double brackets
is left as written. Cross-reference tokens of the form [[Type-S#-L#-P#]]
are inert here and can only be rewritten, never resolved.
"""
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import List, NamedTuple, Optional, Tuple

from isit_game.models.schemas import MessageVariables

METRIC_TOKEN = re.compile(r"\[\[(DQ|AQ|PointTotal|LastDQ|LastScore)\]\]", re.IGNORECASE)
VARIABLE_REF = re.compile(r"\[\[([a-zA-Z0-9]+)-S(\d+)-L(\d+)-P(\d+)\]\]")

class VariableRef(NamedTuple):
    type: str
    stage: int
    level: int
    poll: int

def format_fixed2(value: float) -> str:
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

def format_int(value: float) -> str:
    return str(int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)))

def replace_message_variables(text: Optional[str], variables: MessageVariables) -> str:
    if not text:
        return ""
    values = {
        "dq": format_fixed2(variables.dq),
        "aq": format_int(variables.aq),
        "pointtotal": format_int(variables.point_total),
        "lastdq": format_fixed2(variables.last_dq),
        "lastscore": format_int(variables.last_score),
    }
    return METRIC_TOKEN.sub(lambda m: values[m.group(1).lower()], text)

def find_variable_refs(text: Optional[str]) -> List[VariableRef]:
    if not text:
        return []
    return [VariableRef(m.group(1), int(m.group(2)), int(m.group(3)), int(m.group(4))) for m in VARIABLE_REF.finditer(text)]

def rewrite_variable_refs(text: Optional[str], stage: Optional[int] = None, level: Optional[int] = None,
                          poll: Optional[int] = None) -> Tuple[str, int]:
    """Swap the numeric parts of every cross-reference token, keeping its Type.

    Components left as None are kept. Returns the new text and the number of
    tokens whose value actually changed.
    """
    if not text:
        return "", 0
    changed = 0

    def swap(m: re.Match) -> str:
        nonlocal changed
        kind, s, l, p = m.groups()
        new_s = str(stage) if stage is not None else s
        new_l = str(level) if level is not None else l
        new_p = str(poll) if poll is not None else p
        if (new_s, new_l, new_p) != (s, l, p):
            changed += 1
        return f"[[{kind}-S{new_s}-L{new_l}-P{new_p}]]"

    return VARIABLE_REF.sub(swap, text), changed
