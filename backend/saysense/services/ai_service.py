"""
AI scoring boundary.

``MockAiService`` returns canned transcription and sentiment plus rule-based
feedback. Domain services only depend on the ``AiService`` protocol.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

from saysense.models.enums import MetricType, Severity, SuggestionType
from saysense.schemas.analysis import MetricCreate
from saysense.schemas.feedback import SuggestionCreate

FILLER_WORDS = ("um", "uh", "like", "you know", "so", "basically")
FAST_WPM = 180
SLOW_WPM = 100
MAX_FILLERS = 5

SENTIMENT_TONE = {"positive": 0.8, "neutral": 0.0, "negative": -0.6}

_MOCK_TRANSCRIPT = "This is a sample transcription of the audio content."


@dataclass
class TranscriptionResult:
    text: str
    confidence: float
    words: List[Dict[str, float]] = field(default_factory=list)


@dataclass
class SentimentResult:
    sentiment: str
    score: float
    emotions: Dict[str, float] = field(default_factory=dict)


@dataclass
class AudioAnalysis:
    transcription: TranscriptionResult
    sentiment: SentimentResult
    metrics: List[MetricCreate]


@dataclass(frozen=True)
class MetricSample:
    metric_type: MetricType
    value: float
    timestamp: float = 0.0


class AiService(Protocol):
    def transcribe_audio(self, audio: bytes, sample_rate: int) -> TranscriptionResult:
        ...

    def analyze_sentiment(self, text: str) -> SentimentResult:
        ...

    def analyze_audio(self, audio: bytes, sample_rate: int, offset_sec: float = 0.0) -> AudioAnalysis:
        ...

    def generate_feedback(
        self,
        transcript: str,
        metrics: Sequence[MetricSample],
        duration_sec: int = 0,
    ) -> List[SuggestionCreate]:
        ...


def count_filler_words(text: str) -> int:
    lowered = (text or "").lower()
    total = 0
    for filler in FILLER_WORDS:
        pattern = r"\b" + r"\s+".join(re.escape(part) for part in filler.split()) + r"\b"
        total += len(re.findall(pattern, lowered))
    return total


def words_per_minute(word_count: int, duration_sec: float) -> float:
    if duration_sec <= 0:
        return 0.0
    return word_count / (duration_sec / 60.0)


def _latest(metrics: Sequence[MetricSample], metric_type: MetricType) -> Optional[MetricSample]:
    matching = [m for m in metrics if m.metric_type == metric_type]
    if not matching:
        return None
    return max(matching, key=lambda m: m.timestamp)


class MockAiService:
    def transcribe_audio(self, audio: bytes, sample_rate: int) -> TranscriptionResult:
        words = [{"confidence": 0.95} for _ in _MOCK_TRANSCRIPT.split()]
        return TranscriptionResult(text=_MOCK_TRANSCRIPT, confidence=0.95, words=words)

    def analyze_sentiment(self, text: str) -> SentimentResult:
        return SentimentResult(
            sentiment="positive",
            score=0.85,
            emotions={"joy": 0.7, "confidence": 0.8, "nervousness": 0.2},
        )

    def analyze_audio(self, audio: bytes, sample_rate: int, offset_sec: float = 0.0) -> AudioAnalysis:
        transcription = self.transcribe_audio(audio, sample_rate)
        sentiment = self.analyze_sentiment(transcription.text)

        # 16-bit mono PCM
        duration_sec = len(audio) / float(sample_rate * 2) if sample_rate > 0 else 0.0
        word_count = len(transcription.text.split())
        confidences = [w["confidence"] for w in transcription.words]
        clarity = sum(confidences) / len(confidences) if confidences else transcription.confidence

        metrics = [
            MetricCreate(
                metric_type=MetricType.TONE,
                value=SENTIMENT_TONE.get(sentiment.sentiment, 0.0),
                timestamp=offset_sec,
                label=sentiment.sentiment,
            ),
            MetricCreate(
                metric_type=MetricType.SPEED,
                value=round(words_per_minute(word_count, duration_sec), 2),
                timestamp=offset_sec,
                label="words_per_minute",
            ),
            MetricCreate(metric_type=MetricType.CLARITY, value=clarity, timestamp=offset_sec),
        ]
        return AudioAnalysis(transcription=transcription, sentiment=sentiment, metrics=metrics)

    def generate_feedback(
        self,
        transcript: str,
        metrics: Sequence[MetricSample],
        duration_sec: int = 0,
    ) -> List[SuggestionCreate]:
        suggestions: List[SuggestionCreate] = []

        speed_metric = _latest(metrics, MetricType.SPEED)
        if speed_metric is not None:
            speed = speed_metric.value
        else:
            speed = words_per_minute(len((transcript or "").split()), duration_sec)

        if speed > FAST_WPM:
            suggestions.append(
                SuggestionCreate(
                    type=SuggestionType.PACING,
                    severity=Severity.MEDIUM,
                    message="You're speaking very quickly. Try to slow down for better clarity.",
                    meta={"wordsPerMinute": round(speed, 1)},
                )
            )
        elif 0 < speed < SLOW_WPM:
            suggestions.append(
                SuggestionCreate(
                    type=SuggestionType.PACING,
                    severity=Severity.LOW,
                    message="Your pace is a bit slow. Try to speak with more energy.",
                    meta={"wordsPerMinute": round(speed, 1)},
                )
            )

        fillers = count_filler_words(transcript)
        if fillers > MAX_FILLERS:
            suggestions.append(
                SuggestionCreate(
                    type=SuggestionType.PAUSE,
                    severity=Severity.MEDIUM,
                    message=f"You used {fillers} filler words. Try pausing instead to gather your thoughts.",
                    meta={"fillerWords": fillers},
                )
            )
        return suggestions


mock_ai_service = MockAiService()


def get_ai_service() -> AiService:
    return mock_ai_service
