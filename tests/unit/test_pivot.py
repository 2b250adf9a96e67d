"""
Unit tests for pivot table construction and team pagination.
"""
from datetime import date

import pytest

from status_matrix.models import QuestionRef, Response, StatusRecord
from status_matrix.normalize import parse_status_records
from status_matrix.pivot import (
    LEAVE_PLACEHOLDER,
    build_pivot_table,
    date_range,
    page_window,
    paginate_teams,
)
from tests.fixtures.mock_data import create_mock_status, create_mock_status_dataset, question


@pytest.fixture
def records():
    return parse_status_records(create_mock_status_dataset())


@pytest.fixture
def table(records):
    return build_pivot_table(records)


class TestDateAxis:
    """Test the continuous, newest-first date axis."""

    def test_gaps_are_filled(self, table):
        assert table.dates == ["2025-05-07", "2025-05-06", "2025-05-05"]

    def test_date_range_of_nothing(self):
        assert date_range([]) == []

    def test_single_day(self):
        assert date_range([date(2025, 5, 5), date(2025, 5, 5)]) == [date(2025, 5, 5)]


class TestCells:
    """Test cell lookups, leave placeholders and absent answers."""

    def test_recorded_answers(self, table):
        assert table.answer("Alpha", "Bob", "q1", "2025-05-05") == "Wrote tests"
        assert table.answer("Alpha", "Bob", "q1", date(2025, 5, 7)) == "Shipped import"

    def test_absent_answer_is_none(self, table):
        assert table.answer("Alpha", "Bob", "q2", "2025-05-07") is None
        assert table.answer("Alpha", "Bob", "q1", "2025-05-06") is None
        assert table.answer("Gamma", "Bob", "q1", "2025-05-05") is None

    def test_empty_answer_is_kept(self):
        records = parse_status_records([
            create_mock_status(responses=[{"question": question("q1", "Done?"), "answer": ""}]),
        ])
        table = build_pivot_table(records)
        assert table.answer("Alpha", "Bob", "q1", "2025-05-05") == ""

    def test_leave_fills_every_question(self, table):
        assert table.answer("Alpha", "Carol", "q1", "2025-05-05") == LEAVE_PLACEHOLDER
        assert table.answer("Alpha", "Carol", "q2", "2025-05-05") == LEAVE_PLACEHOLDER

    def test_bare_question_borrows_known_text(self, table):
        assert table.teams["Beta"]["Dave"]["q2"].text == "Any blockers?"

    def test_bare_question_without_text_uses_id(self):
        record = StatusRecord(
            id="s9",
            day=date(2025, 5, 5),
            responses=[Response(question=QuestionRef("q7", None), answer="yes")],
        )
        table = build_pivot_table([record])
        assert table.teams["Unknown Team"]["Unknown User"]["q7"].text == "q7"


class TestLayout:
    """Test row-spans, the status index and row iteration."""

    def test_rowspans(self, table):
        assert table.team_rowspans == {"Alpha": 4, "Beta": 2}
        assert table.user_rowspans[("Alpha", "Bob")] == 2
        assert table.user_rowspans[("Beta", "Dave")] == 2

    def test_every_user_lists_every_question(self, table):
        assert set(table.teams["Beta"]["Dave"]) == {"q1", "q2"}

    def test_status_index(self, table):
        assert table.record_for("u1", "2025-05-07") == "s2"
        assert table.record_for("u2", date(2025, 5, 5)) == "s3"
        assert table.record_for("u3", "2025-05-05") is None

    def test_iter_rows(self, table):
        rows = list(table.iter_rows())

        assert len(rows) == 6
        first, second, third = rows[:3]
        assert (first.team, first.user, first.question_id) == ("Alpha", "Bob", "q1")
        assert first.cells == ["Shipped import", None, "Wrote tests"]
        assert first.first_in_team and first.first_in_user
        assert not second.first_in_team and not second.first_in_user
        assert third.user == "Carol"
        assert not third.first_in_team and third.first_in_user

    def test_summary(self, table):
        assert table.summary() == {
            "teams": 2,
            "users": 3,
            "questions": 2,
            "days": 3,
            "range": ("2025-05-05", "2025-05-07"),
        }

    def test_empty_table(self):
        table = build_pivot_table([])
        assert table.dates == []
        assert table.teams == {}
        assert table.summary()["range"] is None

    def test_to_dict(self, table):
        payload = table.to_dict()

        assert payload["teamRowspans"] == {"Alpha": 4, "Beta": 2}
        assert {"team": "Alpha", "user": "Carol", "rows": 2} in payload["userRowspans"]
        assert {"userId": "u3", "date": "2025-05-07", "statusId": "s4"} in payload["statusIndex"]
        assert payload["teams"]["Alpha"]["Bob"]["q2"] == {
            "text": "Any blockers?",
            "answers": {"2025-05-05": "None"},
        }


class TestPagination:
    """Test team pagination and the page number window."""

    def test_all_teams_fit(self, records):
        selected, total = paginate_teams(records, 1)
        assert selected == records
        assert total == 1

    def test_second_page(self, records):
        selected, total = paginate_teams(records, 2, per_page=1)

        assert total == 2
        assert [record.id for record in selected] == ["s4"]

    def test_no_records(self):
        assert paginate_teams([], 1) == ([], 0)

    @pytest.mark.parametrize("current,total,expected", [
        (1, 3, [1, 2, 3]),
        (1, 10, [1, 2, 3, 4, "...", 10]),
        (5, 10, [1, "...", 3, 4, 5, 6, 7, "...", 10]),
        (10, 10, [1, "...", 7, 8, 9, 10]),
        (4, 6, [1, "...", 3, 4, 5, 6]),
    ])
    def test_page_window(self, current, total, expected):
        assert page_window(current, total) == expected
