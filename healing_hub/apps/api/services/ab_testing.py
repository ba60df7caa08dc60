"""Deterministic A/B variant assignment."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Sequence

from healing_hub.apps.api.services.analytics import track_ab_test_event

LOGGER = logging.getLogger(__name__)

_INT32_MAX = 2147483647
WEIGHT_TOLERANCE = 0.001
# Users whose assignments are remembered; the least recently seen are forgotten first.
MAX_TRACKED_USERS = 10_000


def string_hash(text: str) -> int:
    """Non-negative 32-bit ``h = h * 31 + c`` string hash over UTF-16 code units.

    Characters outside the BMP count as their surrogate pair.
    """

    data = text.encode("utf-16-le", "surrogatepass")
    value = 0
    for index in range(0, len(data), 2):
        unit = data[index] | (data[index + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


@dataclass
class ABTest:
    name: str
    variants: list[str]
    weights: list[float] | None = None
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "variants": list(self.variants), "weights": self.weights, "enabled": self.enabled}


@dataclass
class ABTestingService:
    tests: dict[str, ABTest] = field(default_factory=dict)
    assignments: OrderedDict[str, dict[str, str]] = field(default_factory=OrderedDict)
    max_tracked_users: int = MAX_TRACKED_USERS

    def register_test(self, test: ABTest) -> None:
        if test.weights is not None:
            if len(test.weights) != len(test.variants):
                raise ValueError("Weights array must match variants array length")
            if abs(sum(test.weights) - 1) > WEIGHT_TOLERANCE:
                raise ValueError("Weights must sum to 1")
        self.tests[test.name] = test

    def assign_variant(self, test: ABTest, user_key: str) -> str:
        hashed = string_hash(user_key + test.name)
        if test.weights:
            point = hashed / _INT32_MAX
            cumulative = 0.0
            for variant, weight in zip(test.variants, test.weights):
                cumulative += weight
                if point <= cumulative:
                    return variant
            return test.variants[-1]
        return test.variants[hashed % len(test.variants)]

    async def get_variant(self, test_name: str, user_key: str) -> str:
        test = self.tests.get(test_name)
        if test is None or not test.enabled:
            return test.variants[0] if test and test.variants else "control"

        user_tests = self._remember(user_key)
        if test_name in user_tests:
            return user_tests[test_name]

        variant = self.assign_variant(test, user_key)
        user_tests[test_name] = variant
        await track_ab_test_event(test_name=test_name, variant=variant, user_id=user_key, event_type="assignment")
        return variant

    def _remember(self, user_key: str) -> dict[str, str]:
        if user_key in self.assignments:
            self.assignments.move_to_end(user_key)
            return self.assignments[user_key]
        while len(self.assignments) >= self.max_tracked_users:
            self.assignments.popitem(last=False)
        return self.assignments.setdefault(user_key, {})

    async def track_conversion(
        self,
        test_name: str,
        user_key: str,
        event_type: str = "conversion",
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Record a conversion; ``None`` when the user was never assigned to the test."""

        variant = self.assignments.get(user_key, {}).get(test_name)
        if variant is None:
            LOGGER.debug("ab_conversion_without_assignment test=%s", test_name)
            return None
        return await track_ab_test_event(
            test_name=test_name,
            variant=variant,
            user_id=user_key,
            event_type=event_type,
            metadata=metadata,
        )

    def active_tests(self, user_key: str) -> list[dict[str, str]]:
        return [
            {"testName": name, "variant": variant, "userId": user_key}
            for name, variant in self.assignments.get(user_key, {}).items()
        ]

    def reset(self) -> None:
        self.assignments.clear()


DEFAULT_TESTS: Sequence[ABTest] = (
    ABTest("landing_page_cta", ["original", "spiritual_focus", "urgency_focus"], [0.4, 0.3, 0.3]),
    ABTest("form_introduction", ["standard", "personal", "mystical"], [0.33, 0.33, 0.34]),
    ABTest("email_consent_copy", ["gentle", "benefits_focused", "community_focused"]),
)


def build_default_service() -> ABTestingService:
    service = ABTestingService()
    for test in DEFAULT_TESTS:
        service.register_test(test)
    return service


AB_TESTING = build_default_service()


__all__ = [
    "AB_TESTING",
    "ABTest",
    "ABTestingService",
    "DEFAULT_TESTS",
    "build_default_service",
    "string_hash",
]
