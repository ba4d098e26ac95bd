import pytest

from schemas.place import PlaceCategory
from schemas.preferences import CategoryPreference, UserPreferences
from modules.planning.place_scoring import (
    bayesian_rating,
    filter_avoided,
    prioritize,
    proximity_boost,
    score_place,
)

from factories import make_place


def test_bayesian_rating_shrinks_toward_prior():
    assert bayesian_rating(5.0, 0) == pytest.approx(4.2)
    assert bayesian_rating(5.0, 200) == pytest.approx(4.6)
    assert bayesian_rating(5.0, 100_000) > 4.99


def test_score_rewards_votes_icons_and_proximity():
    base = score_place("City Park", 4.5, 1000)
    assert score_place("City Park", 4.5, 10_000) > base
    assert score_place("Grand Mosque", 4.5, 1000) == pytest.approx(base * 1.06)
    assert score_place("City Park", 4.5, 1000, distance_km=10) < base
    assert proximity_boost(0) == 1.0


def test_avoid_list_matches_id_and_name_fragment():
    places = [
        make_place("p1", name="Central Souk"),
        make_place("p2", name="Louvre Museum"),
        make_place("p3", name="City Zoo"),
    ]
    kept = filter_avoided(places, ["p3", "souk", "  "])
    assert [p.place_id for p in kept] == ["p2"]


def test_category_weight_reorders():
    museum = make_place("museum", score=10.0, category=PlaceCategory.MUSEUM)
    park = make_place("park", score=11.0, category=PlaceCategory.PARK)
    prefs = UserPreferences(preferences={"museum": CategoryPreference(weight=10)})

    ranked = prioritize([park, museum], prefs)
    assert [p.place_id for p in ranked] == ["museum", "park"]
    assert museum.score == 10.0    # originals untouched


def test_duration_override_and_avoid_together():
    beach = make_place("beach", category=PlaceCategory.BEACH, duration=150)
    zoo = make_place("zoo", category=PlaceCategory.ZOO, name="Wildlife Zoo")
    prefs = UserPreferences(
        preferences={"beach": CategoryPreference(weight=5, duration=90)},
        avoid_places=["wildlife"],
    )
    ranked = prioritize([beach, zoo], prefs)
    assert [p.place_id for p in ranked] == ["beach"]
    assert ranked[0].preferred_duration_minutes == 90


def test_no_preferences_just_sorts():
    ranked = prioritize([make_place("a", score=1), make_place("b", score=2)], None)
    assert [p.place_id for p in ranked] == ["b", "a"]
