"""
Unit Tests for bookmark helpers: SM-2 scheduling, review messages, CSV export
"""
import csv
import io
import pytest
from datetime import datetime

from prepx.models.bookmark import Bookmark
from prepx.services.bookmark_service import calculate_sm2, review_message, bookmarks_to_csv


class TestSM2:
    """Spaced repetition scheduling"""

    def test_first_review_medium(self):
        ease, interval, reps = calculate_sm2("medium", 2.5, 1, 0)

        assert ease == pytest.approx(2.5)
        assert interval == 1
        assert reps == 1

    def test_second_review_jumps_to_six_days(self):
        ease, interval, reps = calculate_sm2("medium", 2.5, 1, 1)

        assert interval == 6
        assert reps == 2

    def test_later_reviews_scale_by_ease(self):
        ease, interval, reps = calculate_sm2("medium", 2.5, 6, 2)

        assert interval == 15
        assert reps == 3

    def test_easy_raises_ease_and_adds_bonus(self):
        ease, interval, reps = calculate_sm2("easy", 2.5, 6, 2)

        assert ease == pytest.approx(2.6)
        # round(6 * 2.6) = 16, then the easy bonus: round(16 * 1.3) = 21
        assert interval == 21
        assert reps == 3

    def test_again_resets(self):
        ease, interval, reps = calculate_sm2("again", 2.5, 15, 4)

        assert ease == pytest.approx(1.96)
        assert interval == 1
        assert reps == 0

    def test_hard_grows_interval_slowly(self):
        ease, interval, reps = calculate_sm2("hard", 2.5, 10, 3)

        assert ease == pytest.approx(2.36)
        assert interval == 12
        assert reps == 4

    def test_ease_never_below_floor(self):
        ease, _, _ = calculate_sm2("hard", 1.3, 10, 3)
        assert ease == pytest.approx(1.3)

        ease, _, _ = calculate_sm2("again", 1.3, 10, 3)
        assert ease == pytest.approx(1.3)

    def test_interval_at_least_one_day(self):
        _, interval, _ = calculate_sm2("hard", 2.5, 0, 0)
        assert interval == 1

    def test_unknown_response_raises(self):
        with pytest.raises(KeyError):
            calculate_sm2("perfect", 2.5, 1, 0)


class TestReviewMessage:

    def test_messages(self):
        assert review_message("easy", 21) == "Great! Next review in 21 days."
        assert review_message("medium", 6) == "Next review in 6 days."
        assert "soon" in review_message("hard", 2)
        assert "tomorrow" in review_message("again", 1)


class TestCsvExport:
    """Library export as CSV"""

    def test_header_only_when_empty(self):
        assert bookmarks_to_csv([]) == "id,title,content_type,snippet,tags,bookmarked_at\n"

    def test_quotes_and_tags(self):
        bookmark = Bookmark(
            id="b1",
            user_id="u1",
            content_type="note",
            content_id="c1",
            title='The "basic structure" doctrine',
            snippet="Kesavananda Bharati, 1973",
            tags=["polity", "constitution"],
            bookmarked_at=datetime(2024, 1, 2, 3, 4, 5),
        )

        lines = bookmarks_to_csv([bookmark]).splitlines()

        assert len(lines) == 2
        assert lines[1] == (
            'b1,"The ""basic structure"" doctrine",note,'
            '"Kesavananda Bharati, 1973",polity;constitution,2024-01-02T03:04:05'
        )

    def test_missing_fields(self):
        bookmark = Bookmark(id="b2", content_type="pyq", title="Q", snippet=None, tags=None, bookmarked_at=None)

        assert bookmarks_to_csv([bookmark]).splitlines()[1] == "b2,Q,pyq,,,"

    def test_multiline_snippet_stays_one_record(self):
        bookmark = Bookmark(
            id="b3", content_type="note", title="Preamble", snippet="We, the people\nof India", tags=[], bookmarked_at=None
        )

        rows = list(csv.reader(io.StringIO(bookmarks_to_csv([bookmark]))))

        assert rows[1] == ["b3", "Preamble", "note", "We, the people\nof India", "", ""]
