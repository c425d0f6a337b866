from __future__ import annotations

import logging
import sys

logger = logging.getLogger(__name__)


def ask_yes_no(prompt: str, *, assume_yes: bool = False) -> bool:
    """Ask a [y/N] question. Non-interactive sessions get the default (no)."""

    if assume_yes:
        logger.info("%s -> yes (assumed)", prompt)
        return True
    if not sys.stdin.isatty():
        logger.info("%s -> no (non-interactive)", prompt)
        return False
    try:
        answer = input(f"[?] {prompt} [y/N]: ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}
