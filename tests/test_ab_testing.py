import pytest

from healing_hub.apps.api.services.ab_testing import (
    ABTest,
    ABTestingService,
    build_default_service,
    string_hash,
)
from healing_hub.apps.api.services.analytics import EVENT_TALLY


def test_string_hash_matches_32_bit_rolling_hash():
    assert string_hash("") == 0
    assert string_hash("a") == 97
    assert string_hash("hello") == 99162322
    assert string_hash("\u00e9") == 233
    # U+1F600 hashes as the surrogate pair 0xD83D, 0xDE00.
    assert string_hash("\U0001F600") == 0xD83D * 31 + 0xDE00


def test_weights_are_validated():
    service = ABTestingService()
    with pytest.raises(ValueError, match="length"):
        service.register_test(ABTest("t", ["a", "b"], [1.0]))
    with pytest.raises(ValueError, match="sum to 1"):
        service.register_test(ABTest("t", ["a", "b"], [0.5, 0.6]))
    service.register_test(ABTest("t", ["a", "b"], [0.5, 0.5005]))
    assert "t" in service.tests


def test_assignment_is_deterministic_across_services():
    first = build_default_service()
    second = build_default_service()
    for user in ("user-1", "user-2", "luna@example.com"):
        for test in first.tests.values():
            variant = first.assign_variant(test, user)
            assert variant in test.variants
            assert variant == second.assign_variant(second.tests[test.name], user)


def test_unweighted_assignment_uses_modulo():
    test = ABTest("copy", ["x", "y", "z"])
    expected = test.variants[string_hash("user-1copy") % 3]
    assert ABTestingService().assign_variant(test, "user-1") == expected


@pytest.mark.asyncio
async def test_get_variant_is_sticky_and_tracks_assignment():
    service = build_default_service()
    variant = await service.get_variant("landing_page_cta", "user-9")
    assert await service.get_variant("landing_page_cta", "user-9") == variant
    assert EVENT_TALLY.counts["ab_test_event"] == 1
    assert service.active_tests("user-9") == [
        {"testName": "landing_page_cta", "variant": variant, "userId": "user-9"}
    ]


@pytest.mark.asyncio
async def test_unknown_and_disabled_tests_fall_back():
    service = ABTestingService()
    service.register_test(ABTest("paused", ["first", "second"], enabled=False))
    assert await service.get_variant("missing", "user") == "control"
    assert await service.get_variant("paused", "user") == "first"
    assert service.assignments == {}


@pytest.mark.asyncio
async def test_conversion_requires_assignment():
    service = build_default_service()
    assert await service.track_conversion("form_introduction", "user-3") is None

    await service.get_variant("form_introduction", "user-3")
    event = await service.track_conversion("form_introduction", "user-3", metadata={"step": "submit"})
    assert event["success"] is True
    assert event["eventId"].startswith("event_")


@pytest.mark.asyncio
async def test_assignments_forget_least_recent_users():
    service = build_default_service()
    service.max_tracked_users = 2

    first = await service.get_variant("landing_page_cta", "user-1")
    await service.get_variant("landing_page_cta", "user-2")
    assert await service.get_variant("landing_page_cta", "user-1") == first
    await service.get_variant("landing_page_cta", "user-3")

    assert list(service.assignments) == ["user-1", "user-3"]
    assert await service.track_conversion("landing_page_cta", "user-2") is None
