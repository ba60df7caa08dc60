"""Spiritual guidance prompts, exercises and context extraction for the chat companion.

The system prompt is assembled from a fixed base plus optional sections for
the user's journey stage, current mood, practice preferences, healing goals
and how many sessions they have had. Context can be supplied by the client or
inferred from the conversation history with simple keyword matching.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping, Sequence

BASE_SPIRITUAL_PROMPT = """
You are a compassionate spiritual guide for the Sacred Healing Companion & Journey Hub.
Your purpose is to provide heart-centered guidance to users on their healing journeys.

Core Guidelines:
- Speak with warmth, compassion, and spiritual wisdom
- Avoid making medical claims or diagnosing conditions
- Encourage self-reflection and personal sovereignty
- Respect all spiritual traditions and beliefs
- Suggest practices like meditation, journaling, and mindfulness
- Use gentle, supportive language that honors the sacred nature of healing
- Respect user privacy and confidentiality
- If users ask about fasting or detoxification, emphasize safety and listening to one's body
- Avoid giving specific medical advice; suggest consulting healthcare providers when appropriate
- Respond to emotional distress with empathy and appropriate resources

The user will interact with you using their "Healing Name" - a pseudonym they've chosen for privacy.
"""

JOURNEY_STAGE_PROMPTS: dict[str, str] = {
    "beginning": """
The user is at the beginning of their healing journey. They may feel:
- Uncertain about where to start
- Overwhelmed by possibilities
- Curious but cautious
- Ready for gentle guidance

Focus on:
- Welcoming them with warmth
- Providing simple, accessible practices
- Building confidence and trust
- Explaining concepts gently
- Offering encouragement and validation
""",
    "exploring": """
The user is actively exploring their healing path. They may be:
- Trying different practices
- Asking deeper questions
- Experiencing some resistance or challenges
- Seeking more specific guidance

Focus on:
- Supporting their exploration
- Helping them navigate challenges
- Offering varied practices and perspectives
- Encouraging self-discovery
- Validating their experiences
""",
    "deepening": """
The user is deepening their practice and understanding. They may be:
- Experiencing profound insights
- Working through deeper patterns
- Seeking advanced guidance
- Integrating spiritual practices into daily life

Focus on:
- Honoring their growth and insights
- Offering more nuanced guidance
- Supporting integration of experiences
- Encouraging continued practice
- Addressing complex spiritual questions
""",
    "integrating": """
The user is integrating their healing journey into their life. They may be:
- Sharing their wisdom with others
- Maintaining consistent practices
- Seeking ways to serve
- Balancing spiritual growth with daily responsibilities

Focus on:
- Celebrating their progress
- Supporting their service to others
- Helping maintain balance
- Encouraging continued growth
- Offering advanced practices and wisdom
""",
}


@dataclass(frozen=True)
class MoodAdjustment:
    tone: str
    suggestions: tuple[str, ...]


MOOD_ADJUSTMENTS: dict[str, MoodAdjustment] = {
    "peaceful": MoodAdjustment(
        "gentle and affirming",
        ("Continue nurturing this peace", "Explore gratitude practices", "Share this peace with others"),
    ),
    "anxious": MoodAdjustment(
        "calming and grounding",
        ("Breathing exercises", "Grounding techniques", "Gentle movement", "Present moment awareness"),
    ),
    "curious": MoodAdjustment(
        "encouraging and exploratory",
        ("New practices to explore", "Books or resources", "Questions for self-reflection"),
    ),
    "struggling": MoodAdjustment(
        "compassionate and supportive",
        ("Self-compassion practices", "Gentle healing approaches", "Professional support if needed"),
    ),
    "grateful": MoodAdjustment(
        "celebratory and expansive",
        ("Gratitude practices", "Ways to share blessings", "Deepening appreciation"),
    ),
}


@dataclass(frozen=True)
class Exercise:
    id: str
    type: str
    title: str
    description: str
    duration: int
    instructions: tuple[str, ...]
    benefits: tuple[str, ...]
    difficulty: str
    tags: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for key in ("instructions", "benefits", "tags"):
            payload[key] = list(payload[key])
        return payload


SPIRITUAL_EXERCISES: dict[str, tuple[Exercise, ...]] = {
    "breathing": (
        Exercise(
            id="breathing-4-7-8",
            type="breathing",
            title="4-7-8 Calming Breath",
            description="A simple breathing technique to promote relaxation and inner peace",
            duration=5,
            instructions=(
                "Sit comfortably with your back straight",
                "Exhale completely through your mouth",
                "Close your mouth and inhale through your nose for 4 counts",
                "Hold your breath for 7 counts",
                "Exhale through your mouth for 8 counts",
                "Repeat this cycle 3-4 times",
            ),
            benefits=("Reduces anxiety", "Promotes relaxation", "Improves sleep quality"),
            difficulty="beginner",
            tags=("breathing", "anxiety", "relaxation"),
        ),
        Exercise(
            id="breathing-heart-centered",
            type="breathing",
            title="Heart-Centered Breathing",
            description="Connect with your heart center through conscious breathing",
            duration=10,
            instructions=(
                "Place one hand on your heart, one on your belly",
                "Breathe naturally and feel the rhythm of your heart",
                "Imagine breathing directly into your heart space",
                "With each inhale, invite love and compassion in",
                "With each exhale, send love to yourself and others",
                "Continue for 5-10 minutes",
            ),
            benefits=("Opens heart chakra", "Increases self-compassion", "Connects to universal love"),
            difficulty="intermediate",
            tags=("heart", "love", "compassion", "chakra"),
        ),
    ),
    "meditation": (
        Exercise(
            id="meditation-loving-kindness",
            type="meditation",
            title="Loving-Kindness Meditation",
            description="Cultivate compassion for yourself and others",
            duration=15,
            instructions=(
                "Sit comfortably and close your eyes",
                'Begin by sending loving-kindness to yourself: "May I be happy, may I be healthy, may I be at peace"',
                "Extend these wishes to a loved one",
                "Include a neutral person in your life",
                "Send loving-kindness to someone you have difficulty with",
                "Finally, extend these wishes to all beings everywhere",
            ),
            benefits=("Increases compassion", "Reduces negative emotions", "Promotes emotional healing"),
            difficulty="beginner",
            tags=("compassion", "love", "healing", "forgiveness"),
        ),
        Exercise(
            id="meditation-sacred-light",
            type="meditation",
            title="Sacred Light Meditation",
            description="Connect with divine light for healing and guidance",
            duration=20,
            instructions=(
                "Sit in a quiet space and close your eyes",
                "Imagine a golden light above your head",
                "See this light slowly descending into your crown",
                "Feel the light filling your entire being",
                "Allow the light to heal any areas of tension or pain",
                "Rest in this sacred light for several minutes",
                "When ready, slowly open your eyes",
            ),
            benefits=("Spiritual connection", "Energy healing", "Inner peace"),
            difficulty="intermediate",
            tags=("light", "healing", "spiritual", "energy"),
        ),
    ),
    "reflection": (
        Exercise(
            id="reflection-gratitude",
            type="reflection",
            title="Gratitude Reflection",
            description="Deepen appreciation for life's blessings",
            duration=10,
            instructions=(
                "Find a quiet moment to sit with your journal",
                "Reflect on three things you're grateful for today",
                "For each item, write why you're grateful",
                "Notice how gratitude feels in your body",
                "Consider how you might share this gratitude with others",
            ),
            benefits=("Increases positivity", "Shifts perspective", "Enhances well-being"),
            difficulty="beginner",
            tags=("gratitude", "journaling", "positivity"),
        ),
    ),
    "affirmation": (
        Exercise(
            id="affirmation-self-worth",
            type="affirmation",
            title="Sacred Self-Worth Affirmations",
            description="Affirm your inherent worth and divine nature",
            duration=5,
            instructions=(
                "Stand or sit with confidence",
                "Place your hand on your heart",
                "Repeat each affirmation with conviction:",
                '"I am worthy of love and healing"',
                '"I trust my inner wisdom"',
                '"I am connected to the divine source"',
                '"My healing journey is sacred and honored"',
                "Feel the truth of these words in your being",
            ),
            benefits=("Builds self-worth", "Increases confidence", "Connects to divine nature"),
            difficulty="beginner",
            tags=("self-worth", "confidence", "divine", "affirmation"),
        ),
    ),
}

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "meditation": ("meditat", "mindful", "awareness"),
    "breathing": ("breath", "breathing", "pranayama"),
    "anxiety": ("anxious", "worry", "stress", "nervous"),
    "gratitude": ("grateful", "thankful", "appreciation"),
    "healing": ("heal", "recovery", "wellness"),
    "love": ("love", "compassion", "kindness"),
    "spiritual": ("spiritual", "divine", "sacred", "soul"),
}

# Table order matters: when several moods match, the last one wins.
MOOD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "anxious": ("anxious", "worried", "stress", "overwhelm"),
    "peaceful": ("peaceful", "calm", "serene", "tranquil"),
    "grateful": ("grateful", "thankful", "blessed", "appreciate"),
    "struggling": ("difficult", "hard", "struggle", "challenge"),
    "curious": ("curious", "wonder", "explore", "learn"),
}


@dataclass
class GuidanceContext:
    journey_stage: str | None = None
    current_mood: str | None = None
    practice_preferences: list[str] = field(default_factory=list)
    healing_goals: list[str] = field(default_factory=list)
    previous_topics: list[str] = field(default_factory=list)
    session_count: int | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "GuidanceContext":
        data = data or {}
        return cls(
            journey_stage=data.get("journey_stage") or data.get("journeyStage"),
            current_mood=data.get("current_mood") or data.get("currentMood"),
            practice_preferences=list(data.get("practice_preferences") or data.get("practicePreferences") or []),
            healing_goals=list(data.get("healing_goals") or data.get("healingGoals") or []),
            previous_topics=list(data.get("previous_topics") or data.get("previousTopics") or []),
            session_count=data.get("session_count") or data.get("sessionCount"),
        )

    def merged_over(self, base: "GuidanceContext") -> "GuidanceContext":
        """Explicit values on ``self`` win; empty ones fall back to ``base``."""

        return GuidanceContext(
            journey_stage=self.journey_stage or base.journey_stage,
            current_mood=self.current_mood or base.current_mood,
            practice_preferences=self.practice_preferences or base.practice_preferences,
            healing_goals=self.healing_goals or base.healing_goals,
            previous_topics=self.previous_topics or base.previous_topics,
            session_count=self.session_count or base.session_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "journeyStage": self.journey_stage,
            "currentMood": self.current_mood,
            "practicePreferences": list(self.practice_preferences),
            "healingGoals": list(self.healing_goals),
            "previousTopics": list(self.previous_topics),
            "sessionCount": self.session_count,
        }


def _all_exercises() -> Iterable[Exercise]:
    for group in SPIRITUAL_EXERCISES.values():
        yield from group


def generate_contextual_prompt(context: GuidanceContext | None = None) -> str:
    context = context or GuidanceContext()
    prompt = BASE_SPIRITUAL_PROMPT

    stage_prompt = JOURNEY_STAGE_PROMPTS.get(context.journey_stage or "")
    if stage_prompt:
        prompt += "\n\nJourney Stage Context:\n" + stage_prompt

    mood = MOOD_ADJUSTMENTS.get(context.current_mood or "")
    if mood:
        prompt += f"\n\nCurrent Mood Context:\nThe user seems to be feeling {context.current_mood}. "
        prompt += f"Respond with a {mood.tone} tone. "
        prompt += f"Consider suggesting: {', '.join(mood.suggestions)}."

    if context.practice_preferences:
        prompt += (
            "\n\nPractice Preferences:\nThe user has shown interest in: "
            f"{', '.join(context.practice_preferences)}."
        )

    if context.healing_goals:
        prompt += f"\n\nHealing Goals:\nThe user's healing goals include: {', '.join(context.healing_goals)}."

    if context.session_count:
        if context.session_count == 1:
            prompt += "\n\nThis is the user's first session. Be especially welcoming and gentle."
        elif context.session_count < 5:
            prompt += "\n\nThis is an early session in their journey. Continue building trust and foundation."
        else:
            prompt += "\n\nThis user has been on their journey for a while. You can offer deeper insights."

    return prompt


def get_personalized_exercises(context: GuidanceContext | None = None, *, limit: int = 3) -> list[Exercise]:
    context = context or GuidanceContext()
    picks: list[Exercise] = []

    def add(candidates: Iterable[Exercise]) -> None:
        for exercise in candidates:
            if all(existing.id != exercise.id for existing in picks):
                picks.append(exercise)

    if context.current_mood == "anxious":
        add(SPIRITUAL_EXERCISES["breathing"])
    elif context.current_mood == "struggling":
        add(ex for ex in SPIRITUAL_EXERCISES["meditation"] if {"compassion", "healing"} & set(ex.tags))
    elif context.current_mood == "grateful":
        add(ex for ex in SPIRITUAL_EXERCISES["reflection"] if "gratitude" in ex.tags)

    if context.journey_stage == "beginning":
        add(ex for ex in SPIRITUAL_EXERCISES["breathing"] if ex.difficulty == "beginner")
        add(SPIRITUAL_EXERCISES["affirmation"])
    elif context.journey_stage == "deepening":
        add(ex for ex in SPIRITUAL_EXERCISES["meditation"] if ex.difficulty == "intermediate")

    for preference in context.practice_preferences:
        add(ex for ex in _all_exercises() if preference.lower() in ex.tags)

    return picks[:limit]


def generate_healing_recommendations(context: GuidanceContext | None = None) -> list[dict[str, Any]]:
    context = context or GuidanceContext()
    recommendations: list[dict[str, Any]] = []

    if context.current_mood == "anxious":
        recommendations.append(
            {
                "id": str(uuid.uuid4()),
                "type": "exercise",
                "title": "Grounding Practice for Anxiety",
                "description": "A gentle practice to help you feel more centered and calm",
                "reason": "Your current state suggests you might benefit from grounding techniques",
                "priority": "high",
                "estimatedTime": 10,
                "exercises": [ex.to_dict() for ex in SPIRITUAL_EXERCISES["breathing"] if "anxiety" in ex.tags],
            }
        )

    if context.journey_stage == "beginning":
        recommendations.append(
            {
                "id": str(uuid.uuid4()),
                "type": "practice",
                "title": "Daily Sacred Moments",
                "description": "Simple ways to bring spirituality into your everyday life",
                "reason": "As you begin your journey, establishing daily practices can provide foundation",
                "priority": "medium",
                "estimatedTime": 15,
                "resources": [
                    {"title": "Morning Intention Setting", "description": "Start each day by setting a sacred intention"},
                    {"title": "Evening Gratitude", "description": "End each day by acknowledging three blessings"},
                ],
            }
        )

    if context.current_mood == "struggling":
        recommendations.append(
            {
                "id": str(uuid.uuid4()),
                "type": "reflection",
                "title": "Self-Compassion Practice",
                "description": "Gentle practices to nurture yourself through difficult times",
                "reason": "During challenging times, self-compassion can be deeply healing",
                "priority": "high",
                "estimatedTime": 20,
                "exercises": [
                    ex.to_dict() for ex in SPIRITUAL_EXERCISES["meditation"] if "compassion" in ex.tags
                ],
            }
        )

    return recommendations


def extract_context_from_history(messages: Sequence[Mapping[str, Any]]) -> GuidanceContext:
    """Infer topics, practice preferences, mood and session count from past turns."""

    context = GuidanceContext(session_count=math.ceil(len(messages) / 2))
    text = " ".join(str(message.get("content") or "").lower() for message in messages)

    for topic, keywords in TOPIC_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            context.previous_topics.append(topic)
            context.practice_preferences.append(topic)

    for mood, keywords in MOOD_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            context.current_mood = mood

    return context


__all__ = [
    "BASE_SPIRITUAL_PROMPT",
    "Exercise",
    "GuidanceContext",
    "JOURNEY_STAGE_PROMPTS",
    "MOOD_ADJUSTMENTS",
    "MOOD_KEYWORDS",
    "SPIRITUAL_EXERCISES",
    "TOPIC_KEYWORDS",
    "extract_context_from_history",
    "generate_contextual_prompt",
    "generate_healing_recommendations",
    "get_personalized_exercises",
]
