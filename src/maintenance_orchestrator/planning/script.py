"""
Script artifact serializer

Renders a plan as a line-oriented PowerShell script. Every operation between
the banners is preceded by a step marker line, ``[i/N] label``, which the live
backend turns into progress.
"""

import re
from typing import List, Optional, Tuple

from .plan_builder import Plan

LINE_SEPARATOR = "\r\n"

STEP_MARKER_RE = re.compile(r"^\[(\d+)/(\d+)\]\s")


def _ps_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def step_marker(index: int, total: int, label: str) -> str:
    """Display statement announcing step ``index`` of ``total``"""
    return f"Write-Output {_ps_literal(f'[{index}/{total}] {label}')}"


def render_lines(plan: Plan) -> List[str]:
    """Script statements in execution order"""
    steps = plan.steps
    total = len(steps)
    lines: List[str] = []
    index = 0
    for operation in plan:
        if not operation.is_banner:
            index += 1
            lines.append(step_marker(index, total, operation.human_label))
        lines.extend(operation.statements)
    return lines


def render_script(plan: Plan) -> str:
    """Full script text; identical plans render identical text"""
    return LINE_SEPARATOR.join(render_lines(plan)) + LINE_SEPARATOR


def parse_step_marker(line: str) -> Optional[Tuple[int, int]]:
    """Return (index, total) if the output line is a step marker"""
    match = STEP_MARKER_RE.match(line.strip())
    if not match:
        return None
    index, total = int(match.group(1)), int(match.group(2))
    if total <= 0 or not 0 < index <= total:
        return None
    return index, total
