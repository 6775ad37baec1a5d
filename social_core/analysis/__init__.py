"""Utterance analysis pipeline: surface -> speech act -> intent -> hypotheses -> per-NPC reading."""

from social_core.analysis.hypotheses import build_hypotheses
from social_core.analysis.intent import parse_intent
from social_core.analysis.interpretation import SocialInterpretationEngine
from social_core.analysis.speech_acts import SpeechActClassifier
from social_core.analysis.surface import analyze_surface, is_meta_text

__all__ = [
    "SocialInterpretationEngine",
    "SpeechActClassifier",
    "analyze_surface",
    "build_hypotheses",
    "is_meta_text",
    "parse_intent",
]
