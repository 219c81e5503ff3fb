"""Pydantic models for the backend layer.

These models define what a backend capability receives
(:class:`AnalysisInput` wrapped in a :class:`BackendRequest`) and the
shape of the domain results it is expected to produce for each
analysis kind.  The result schemas are used by the deterministic fake
backend to emit well formed payloads; live backends return raw model
text which is parsed and then judged by the acceptability checker,
not by these models.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


AnalysisKind = Literal["cognitive", "psychological"]

ANALYSIS_KINDS: List[str] = ["cognitive", "psychological"]


class AnalysisInput(BaseModel):
    """Immutable text plus the analysis kind that selects prompt and schema."""

    model_config = ConfigDict(frozen=True)

    text: str
    kind: AnalysisKind = "cognitive"


class BackendRequest(BaseModel):
    """One attempt's request to a backend capability.

    ``feedback`` carries the comma separated violation names from the
    previous attempt and is ``None`` on a first attempt.  ``attempt``
    is 1-based.
    """

    model_config = ConfigDict(frozen=True)

    input: AnalysisInput
    feedback: Optional[str] = None
    attempt: int = 1


class CognitiveResult(BaseModel):
    """Cognitive profile of the author of a text."""

    intelligenceScore: int
    characteristics: List[str] = Field(default_factory=list)
    detailedAnalysis: str
    strengths: List[str] = Field(default_factory=list)
    tendencies: List[str] = Field(default_factory=list)


class EmotionalProfile(BaseModel):
    primaryEmotions: List[str] = Field(default_factory=list)
    emotionalStability: int
    detailedAnalysis: str


class MotivationalStructure(BaseModel):
    primaryDrives: List[str] = Field(default_factory=list)
    motivationalPatterns: List[str] = Field(default_factory=list)
    detailedAnalysis: str


class InterpersonalDynamics(BaseModel):
    attachmentStyle: str
    socialOrientations: List[str] = Field(default_factory=list)
    relationshipPatterns: List[str] = Field(default_factory=list)
    detailedAnalysis: str


class PsychologicalResult(BaseModel):
    """Psychological profile of the author of a text."""

    emotionalProfile: EmotionalProfile
    motivationalStructure: MotivationalStructure
    interpersonalDynamics: InterpersonalDynamics
    strengths: List[str] = Field(default_factory=list)
    challenges: List[str] = Field(default_factory=list)
    overallSummary: str
