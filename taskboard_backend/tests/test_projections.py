import copy
from datetime import date, datetime

from src.taskboard.projections import (
    assignee_chart,
    chart_data,
    group_into_columns,
    priority_chart,
    status_chart,
    summarize,
)


def task(id, status="todo", due=None, **extra):
    return {"id": id, "name": f"T{id}", "status": status, "due_date": due, **extra}


class TestBoardColumns:
    def test_fixed_columns_in_workflow_order(self):
        columns = group_into_columns([])
        assert list(columns) == ["todo", "in_progress", "review", "done"]
        assert all(v == [] for v in columns.values())

    def test_grouping_preserves_order(self):
        snapshot = [task(3, "done"), task(2, "todo"), task(1, "done")]
        columns = group_into_columns(snapshot)
        assert [t["id"] for t in columns["done"]] == [3, 1]
        assert [t["id"] for t in columns["todo"]] == [2]

    def test_unknown_status_is_left_off_the_board(self):
        columns = group_into_columns([task(1, "archived"), task(2, "todo")])
        placed = [t["id"] for col in columns.values() for t in col]
        assert placed == [2]

    def test_input_not_mutated(self):
        snapshot = [task(1, "todo"), task(2, "review")]
        before = copy.deepcopy(snapshot)
        group_into_columns(snapshot)
        assert snapshot == before


class TestCharts:
    def test_chart_data_stringifies_and_relabels(self):
        assert chart_data({"a": 1, 2: 3}) == {"a": 1, "2": 3}
        assert status_chart({"todo": 1, "in_progress": 2, "review": 0, "done": 4}) == {
            "To Do": 1,
            "In Progress": 2,
            "Review": 0,
            "Done": 4,
        }
        assert priority_chart({"high": 1, "medium": 0, "low": 2}) == {"High": 1, "Medium": 0, "Low": 2}

    def test_assignee_chart_uses_names(self):
        users = [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Bob"}]
        chart = assignee_chart({None: 2, 1: 3, 2: 1, 9: 1}, users)
        assert chart == {"Ada": 3, "Bob": 1, "Unknown user": 1, "Unassigned": 2}
        assert list(chart)[-1] == "Unassigned"

    def test_assignee_chart_empty(self):
        assert assignee_chart({}, []) == {}


class TestSummary:
    def test_summary_counts(self):
        today = date(2025, 6, 15)
        snapshot = [
            task(1, "done", due=datetime(2025, 6, 1, 12)),
            task(2, "todo", due=datetime(2025, 6, 14, 12)),
            task(3, "review", due=datetime(2025, 6, 15, 12)),
            task(4, "in_progress"),
        ]
        summary = summarize(snapshot, today)
        assert summary["total"] == 4
        assert summary["by_status"] == {"todo": 1, "in_progress": 1, "review": 1, "done": 1}
        assert summary["completion_rate"] == 25
        assert summary["overdue"] == 1

    def test_summary_of_nothing(self):
        summary = summarize([], date(2025, 1, 1))
        assert summary["total"] == 0
        assert summary["completion_rate"] == 0
        assert summary["overdue"] == 0

    def test_summary_accepts_iso_strings(self):
        summary = summarize([task(1, "todo", due="2024-12-31T12:00:00")], date(2025, 1, 1))
        assert summary["overdue"] == 1
