# ghostleak/engine/classifier.py
# Decides whether a probe response is a genuine exposure or noise.
#
# Pure functions, no I/O. Only an HTTP 200 is eligible: anything else is
# "not exposed" and the body is never looked at.

from __future__ import annotations

import re
from typing import Callable, Dict, List, Pattern

from ghostleak.data.models import ExposureKind

# INI section headers found in .git/config files
GIT_SECTION_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\[gc"),
    re.compile(r"\[core"),
    re.compile(r"\[user"),
    re.compile(r"\[http"),
    re.compile(r"\[remote"),
    re.compile(r"\[branch"),
    re.compile(r"\[credentials"),
]

# A raw config file never contains either marker; soft-404 pages always do
HTML_MARKERS = ("<html", "<body")

# KEY=value at the start of any line; comments and blank lines may precede it
ENV_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*[ \t]*=", re.MULTILINE)


def looks_like_html(body: str) -> bool:
    lowered = body.lower()
    return any(marker in lowered for marker in HTML_MARKERS)


def classify_git_config(body: str) -> bool:
    """True iff body has a git config section header and no HTML markers."""
    if not any(p.search(body) for p in GIT_SECTION_PATTERNS):
        return False
    return not looks_like_html(body)


def classify_env_file(body: str) -> bool:
    """True iff one line of body is an environment assignment."""
    return ENV_ASSIGNMENT.search(body) is not None


CLASSIFIERS: Dict[ExposureKind, Callable[[str], bool]] = {
    ExposureKind.GIT_CONFIG: classify_git_config,
    ExposureKind.ENV_FILE: classify_env_file,
}


def is_exposed(kind: ExposureKind, status: int, body: str) -> bool:
    if status != 200:
        return False
    return CLASSIFIERS[ExposureKind(kind)](body)
