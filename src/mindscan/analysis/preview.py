"""Preview rendering for anonymous callers.

Anonymous callers receive every backend's result, but long free-text
fields are cut to a fixed number of words and the payload is marked as
a preview.
"""

from __future__ import annotations

import copy
from typing import Any, Dict

from ..config import PREVIEW_WORD_LIMIT

PREVIEW_MESSAGE = "This is a real preview of your result. Register to unlock full access."

# Fields holding long-form prose, per analysis kind.  Nested fields are
# addressed as ``section.field``.
PREVIEW_FIELDS: Dict[str, list] = {
    "cognitive": ["detailedAnalysis"],
    "psychological": [
        "emotionalProfile.detailedAnalysis",
        "motivationalStructure.detailedAnalysis",
        "interpersonalDynamics.detailedAnalysis",
        "overallSummary",
    ],
}


def truncate_words(text: str, max_words: int = PREVIEW_WORD_LIMIT) -> str:
    """Cut ``text`` to ``max_words`` words, appending ``...`` when cut."""
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + "..."


def make_preview(kind: str, payload: Dict[str, Any], max_words: int = PREVIEW_WORD_LIMIT) -> Dict[str, Any]:
    """Return a preview copy of ``payload``; the input is left untouched."""
    preview = copy.deepcopy(payload)
    for path in PREVIEW_FIELDS.get(kind, []):
        *parents, leaf = path.split(".")
        node: Any = preview
        for key in parents:
            node = node.get(key) if isinstance(node, dict) else None
        if isinstance(node, dict) and isinstance(node.get(leaf), str):
            node[leaf] = truncate_words(node[leaf], max_words)
    preview["isPreview"] = True
    preview["message"] = PREVIEW_MESSAGE
    return preview
