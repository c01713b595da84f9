"""Tests for the SRS engine: SM-2 scheduling, selection and queue logic."""

import pytest

from backend.config import MS_PER_DAY
from backend.models.card import Card
from backend.models.tag import Tag
from backend.srs.queue import QueueConfig, ReviewQueue, build_queue
from backend.srs.selection import (
    CardClass,
    CardFilter,
    cards_by_tag,
    cards_matching,
    classify,
    due_cards,
    is_due,
    learning_cards,
    mature_cards,
    new_cards,
    resolve_tags,
    search_cards,
)
from backend.srs.session import SessionStats
from backend.srs.sm2 import (
    MIN_EASE_FACTOR,
    CardState,
    Rating,
    compute_next_review,
    ease_delta,
    round_half_up,
)
from backend.srs.stats import dashboard_stats

NOW = 1_700_000_000_000


def _make_card(
    card_id: str = "c1",
    front: str = "Bonjour",
    back: str = "Hello",
    tags: list[str] | None = None,
    interval: int = 0,
    repetitions: int = 0,
    ease_factor: float = 2.5,
    next_review_date: int = NOW,
    is_new: bool = True,
) -> Card:
    return Card(
        id=card_id,
        position=0,
        front=front,
        back=back,
        tags=tags or [],
        created_at=NOW,
        updated_at=NOW,
        interval=interval,
        repetitions=repetitions,
        ease_factor=ease_factor,
        next_review_date=next_review_date,
        last_review_date=None if is_new else NOW - MS_PER_DAY,
        is_new=is_new,
    )


def _apply(state: CardState, rating: Rating) -> CardState:
    update = compute_next_review(state, rating, now=NOW)
    return CardState(update.interval, update.repetitions, update.ease_factor)


# --- SM-2 Algorithm ---


class TestSM2:
    def test_new_card_again(self) -> None:
        update = compute_next_review(CardState(0, 0, 2.5), Rating.AGAIN, now=NOW)
        assert update.interval == 1
        assert update.repetitions == 0
        assert update.ease_factor == pytest.approx(1.7)
        assert update.is_new is False

    def test_dates_use_single_clock_sample(self) -> None:
        update = compute_next_review(CardState(6, 2, 2.5), Rating.GOOD, now=NOW)
        assert update.last_review_date == NOW
        assert update.next_review_date == NOW + 15 * MS_PER_DAY

    def test_ladder_with_good(self) -> None:
        state = _apply(CardState(0, 0, 2.5), Rating.GOOD)
        assert (state.interval, state.repetitions) == (1, 1)
        state = _apply(state, Rating.GOOD)
        assert (state.interval, state.repetitions) == (6, 2)
        state = _apply(state, Rating.GOOD)
        assert (state.interval, state.repetitions) == (15, 3)

    def test_good_leaves_ease_unchanged(self) -> None:
        assert ease_delta(4) == 0.0
        state = CardState(0, 0, 2.5)
        for _ in range(10):
            state = _apply(state, Rating.GOOD)
            assert state.ease_factor == 2.5

    def test_easy_from_second_step(self) -> None:
        update = compute_next_review(CardState(6, 2, 2.5), Rating.EASY, now=NOW)
        assert update.interval == 15
        assert update.repetitions == 3
        assert update.ease_factor == pytest.approx(2.6)

    def test_easy_increases_ease(self) -> None:
        assert _apply(CardState(0, 0, 2.5), Rating.EASY).ease_factor > 2.5

    def test_hard_decreases_ease(self) -> None:
        ease = _apply(CardState(0, 0, 2.5), Rating.HARD).ease_factor
        assert ease < 2.5
        assert ease == pytest.approx(2.36)

    def test_hard_still_advances_streak(self) -> None:
        state = _apply(CardState(1, 1, 2.5), Rating.HARD)
        assert (state.interval, state.repetitions) == (6, 2)

    @pytest.mark.parametrize("repetitions", [1, 2, 3, 8, 25])
    def test_lapse_resets_streak(self, repetitions: int) -> None:
        state = _apply(CardState(120, repetitions, 2.8), Rating.AGAIN)
        assert state.repetitions == 0
        assert state.interval == 1

    def test_again_drops_ease_by_point_eight(self) -> None:
        assert _apply(CardState(6, 2, 2.4), Rating.AGAIN).ease_factor == pytest.approx(1.6)

    @pytest.mark.parametrize("ease", [1.3, 1.5, 1.9, 2.1])
    def test_again_hits_floor(self, ease: float) -> None:
        assert _apply(CardState(6, 2, ease), Rating.AGAIN).ease_factor == pytest.approx(MIN_EASE_FACTOR)

    def test_floor_survives_consecutive_lapses(self) -> None:
        state = CardState(30, 5, 2.5)
        for _ in range(20):
            state = _apply(state, Rating.AGAIN)
            assert state.ease_factor >= MIN_EASE_FACTOR
        assert state.ease_factor == MIN_EASE_FACTOR

    def test_corrupt_ease_is_clamped_on_read(self) -> None:
        update = compute_next_review(CardState(10, 2, 0.9), Rating.GOOD, now=NOW)
        # 10 * 1.3 with the clamped ease, not 10 * 0.9
        assert update.interval == 13
        assert update.ease_factor == MIN_EASE_FACTOR

    def test_interval_rounds_half_up(self) -> None:
        # 5 * 2.5 == 12.5 exactly; banker's rounding would give 12
        update = compute_next_review(CardState(5, 2, 2.5), Rating.GOOD, now=NOW)
        assert update.interval == 13

    def test_growth_uses_pre_update_ease(self) -> None:
        update = compute_next_review(CardState(15, 3, 2.5), Rating.EASY, now=NOW)
        assert update.interval == 38  # round(15 * 2.5) = 37.5 -> 38, not 15 * 2.6

    def test_accepts_rating_strings(self) -> None:
        update = compute_next_review(CardState(0, 0, 2.5), "good", now=NOW)
        assert update.repetitions == 1

    def test_invalid_rating_fails_fast(self) -> None:
        with pytest.raises(ValueError):
            compute_next_review(CardState(0, 0, 2.5), "perfect", now=NOW)

    def test_as_fields(self) -> None:
        fields = compute_next_review(CardState(0, 0, 2.5), Rating.GOOD, now=NOW).as_fields()
        assert set(fields) == {
            "interval",
            "repetitions",
            "ease_factor",
            "next_review_date",
            "last_review_date",
            "is_new",
        }

    def test_invariants_hold_across_states(self) -> None:
        for ease in (1.3, 1.7, 2.5, 3.1):
            for repetitions in range(6):
                for interval in (0, 1, 6, 40):
                    for rating in Rating:
                        update = compute_next_review(
                            CardState(interval, repetitions, ease), rating, now=NOW
                        )
                        assert update.ease_factor >= MIN_EASE_FACTOR
                        assert update.interval >= 1
                        assert update.next_review_date > NOW

    def test_round_half_up(self) -> None:
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2
        assert round_half_up(7.0) == 7


# --- Selection ---


class TestSelection:
    def setup_method(self) -> None:
        self.new = _make_card("new", next_review_date=NOW, is_new=True, tags=["fr"])
        self.learning = _make_card(
            "learning", repetitions=1, interval=1, next_review_date=NOW + MS_PER_DAY, is_new=False
        )
        self.lapsed = _make_card(
            "lapsed", repetitions=0, interval=1, next_review_date=NOW - 1, is_new=False, tags=["fr"]
        )
        self.mature = _make_card(
            "mature",
            front="Merci",
            back="Thank you",
            repetitions=3,
            interval=15,
            next_review_date=NOW + 15 * MS_PER_DAY,
            is_new=False,
            tags=["fr", "polite"],
        )
        self.cards = [self.new, self.learning, self.lapsed, self.mature]

    def test_classification_partition(self) -> None:
        assert classify(self.new) is CardClass.NEW
        assert classify(self.learning) is CardClass.LEARNING
        assert classify(self.lapsed) is CardClass.LEARNING
        assert classify(self.mature) is CardClass.MATURE
        for card in self.cards:
            memberships = [card in new_cards(self.cards), card in learning_cards(self.cards), card in mature_cards(self.cards)]
            assert memberships.count(True) == 1

    def test_due_is_time_relative(self) -> None:
        card = self.learning
        assert not is_due(card, now=NOW)
        assert is_due(card, now=card.next_review_date)
        assert is_due(card, now=card.next_review_date + 1)
        assert card.next_review_date == NOW + MS_PER_DAY

    def test_due_cards_preserve_order(self) -> None:
        assert due_cards(self.cards, now=NOW) == [self.new, self.lapsed]
        later = NOW + 30 * MS_PER_DAY
        assert due_cards(self.cards, now=later) == self.cards

    def test_due_with_tag(self) -> None:
        assert due_cards(self.cards, tag_id="fr", now=NOW + 20 * MS_PER_DAY) == [
            self.new,
            self.lapsed,
            self.mature,
        ]
        assert due_cards(self.cards, tag_id="polite", now=NOW) == []

    def test_cards_by_tag_with_dangling_id(self) -> None:
        assert cards_by_tag(self.cards, "polite") == [self.mature]
        assert cards_by_tag(self.cards, "deleted-tag") == []

    def test_search_is_case_insensitive(self) -> None:
        assert search_cards(self.cards, "MERCI") == [self.mature]
        assert search_cards(self.cards, "thank") == [self.mature]

    def test_search_within_tag(self) -> None:
        assert search_cards(self.cards, "hello", tag_id="fr") == [self.new, self.lapsed]

    def test_blank_search_returns_tag_members(self) -> None:
        assert search_cards(self.cards, "   ", tag_id="fr") == [self.new, self.lapsed, self.mature]
        assert search_cards(self.cards, "") == self.cards

    def test_cards_matching_filters(self) -> None:
        assert cards_matching(self.cards, "learning") == [self.learning, self.lapsed]
        assert cards_matching(self.cards, CardFilter.MATURE, query="merci") == [self.mature]
        assert cards_matching(self.cards, CardFilter.DUE, tag_id="fr", now=NOW) == [self.new, self.lapsed]
        assert cards_matching(self.cards) == self.cards

    def test_cards_matching_unknown_filter(self) -> None:
        with pytest.raises(ValueError):
            cards_matching(self.cards, "overdue")

    def test_resolve_tags_skips_deleted(self) -> None:
        polite = Tag(id="polite", position=0, name="Polite", color="#3b82f6", created_at=NOW)
        assert resolve_tags(self.mature, [polite]) == [polite]


# --- Queue ---


class TestReviewQueue:
    def test_due_before_new(self) -> None:
        queue = ReviewQueue(
            due_cards=[_make_card("a"), _make_card("b")],
            new_cards=[_make_card("x")],
        )
        assert [c.id for c in queue.ordered()] == ["a", "b", "x"]

    def test_card_in_both_lists_kept_once(self) -> None:
        fresh = _make_card("fresh")
        queue = ReviewQueue(due_cards=[_make_card("a"), fresh], new_cards=[fresh, _make_card("x")])
        assert [c.id for c in queue.ordered()] == ["a", "fresh", "x"]
        assert queue.total == 3

    def test_counts_split_new_and_review(self) -> None:
        fresh = _make_card("fresh")
        seen = _make_card("a", is_new=False, repetitions=1, next_review_date=NOW - 1)
        queue = ReviewQueue(due_cards=[seen, fresh], new_cards=[fresh])
        assert queue.new_count == 1
        assert queue.review_count == 1
        assert queue.new_count + queue.review_count == queue.total

    def test_capped_at_session_size(self) -> None:
        due = [_make_card(f"d{i}", is_new=False, repetitions=1, next_review_date=NOW - 1) for i in range(40)]
        new = [_make_card(f"n{i}", next_review_date=NOW + MS_PER_DAY) for i in range(30)]
        queue = build_queue(due + new, now=NOW)
        ordered = queue.ordered()
        assert len(ordered) == 50
        assert [c.id for c in ordered[:40]] == [f"d{i}" for i in range(40)]
        assert ordered[40].id == "n0"

    def test_custom_cap(self) -> None:
        cards = [_make_card(f"n{i}") for i in range(5)]
        queue = build_queue(cards, config=QueueConfig(max_cards=2), now=NOW)
        assert [c.id for c in queue.ordered()] == ["n0", "n1"]

    def test_tag_filter(self) -> None:
        cards = [_make_card("a", tags=["t"]), _make_card("b")]
        queue = build_queue(cards, tag_id="t", now=NOW)
        assert [c.id for c in queue.ordered()] == ["a"]

    def test_nothing_due(self) -> None:
        card = _make_card("a", is_new=False, repetitions=2, next_review_date=NOW + MS_PER_DAY)
        assert build_queue([card], now=NOW).total == 0


# --- Statistics ---


class TestSessionStats:
    def test_accuracy(self) -> None:
        stats = SessionStats(again=1, hard=0, good=2, easy=1)
        assert stats.total_reviewed == 4
        assert stats.accuracy == 75

    def test_accuracy_rounds_to_percent(self) -> None:
        assert SessionStats(hard=1, good=2).accuracy == 67
        assert SessionStats(again=7, good=1).accuracy == 13  # 12.5 rounds up

    def test_accuracy_without_reviews(self) -> None:
        assert SessionStats().accuracy == 0

    def test_record(self) -> None:
        stats = SessionStats()
        stats.record(Rating.EASY)
        stats.record(Rating.EASY)
        stats.record(Rating.AGAIN)
        assert (stats.again, stats.easy, stats.total_reviewed) == (1, 2, 3)


class TestDashboardStats:
    def test_counts(self) -> None:
        cards = [
            _make_card("a"),
            _make_card("b", is_new=False, repetitions=1, next_review_date=NOW + MS_PER_DAY),
            _make_card("c", is_new=False, repetitions=4, next_review_date=NOW - 1),
        ]
        stats = dashboard_stats(cards, [], now=NOW)
        assert (stats.total_cards, stats.new, stats.learning, stats.mature) == (3, 1, 1, 1)
        assert stats.due == 2
        assert stats.mastery_percentage == 33
        assert stats.recent_cards == cards

    def test_empty_collection(self) -> None:
        stats = dashboard_stats([], [], now=NOW)
        assert stats.mastery_percentage == 0
        assert stats.recent_cards == []
