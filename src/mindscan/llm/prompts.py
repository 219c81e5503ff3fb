"""Prompt text for the analysis backends.

One system prompt per analysis kind describes the task and the exact
JSON shape expected back.  :func:`render_user_prompt` builds the user
message for one attempt: the text under analysis, followed on retries
by an explicit instruction to repair the listed violations.
"""

from __future__ import annotations

from typing import Dict

from .models import BackendRequest

_COGNITIVE_SYSTEM = """\
You are profiling the mind of the author of a text. You are not grading
the text and you are not giving writing feedback. Treat the text as
evidence of how its author thinks, whether it is a full paper, an
abstract or a rough fragment, and do not penalise incompleteness,
informality or missing citations.

Estimate the author's intelligence on a scale from 1 to 100, where a
score of N means that (100 - N) percent of people would outperform the
author. Then describe the cognitive character of the mind behind the
text. Support every major observation with short quotations from the
text.

Respond with a single JSON object and nothing else:
{
  "intelligenceScore": <integer 1-100>,
  "characteristics": [<4-5 key cognitive characteristics>],
  "detailedAnalysis": "<3-4 paragraphs with quotations>",
  "strengths": [<4-5 cognitive strengths>],
  "tendencies": [<4-5 cognitive tendencies or patterns>]
}
"""

_PSYCHOLOGICAL_SYSTEM = """\
You are profiling the personality of the author of a text from their
writing style, emotional expression and interpersonal stance. You are
not grading the text. Be objective and analytical rather than
judgmental, and ground observations in quotations from the text.

Respond with a single JSON object and nothing else:
{
  "emotionalProfile": {
    "primaryEmotions": [<3-4 primary emotions>],
    "emotionalStability": <integer 1-100>,
    "detailedAnalysis": "<paragraph>"
  },
  "motivationalStructure": {
    "primaryDrives": [<3-4 core motivations>],
    "motivationalPatterns": [<3-4 motivational patterns>],
    "detailedAnalysis": "<paragraph>"
  },
  "interpersonalDynamics": {
    "attachmentStyle": "<attachment pattern>",
    "socialOrientations": [<3-4 social orientations>],
    "relationshipPatterns": [<3-4 relationship patterns>],
    "detailedAnalysis": "<paragraph>"
  },
  "strengths": [<4-5 psychological strengths>],
  "challenges": [<4-5 psychological challenges>],
  "overallSummary": "<comprehensive summary>"
}
"""

SYSTEM_PROMPTS: Dict[str, str] = {
    "cognitive": _COGNITIVE_SYSTEM,
    "psychological": _PSYCHOLOGICAL_SYSTEM,
}


def system_prompt(kind: str) -> str:
    """Return the system prompt for an analysis kind."""
    try:
        return SYSTEM_PROMPTS[kind]
    except KeyError:
        raise ValueError(f"Unknown analysis kind: {kind}")


def render_user_prompt(request: BackendRequest) -> str:
    """Build the user message for one attempt.

    Without feedback the message is the text itself.  With feedback the
    violations from the previous attempt are appended as an explicit
    instruction.
    """
    text = request.input.text
    if not request.feedback:
        return text
    return (
        f"{text}\n\n"
        "IMPORTANT: your previous response was rejected for the following "
        f"issues: {request.feedback}. Address every one of them and respond "
        "with the corrected JSON object only."
    )
