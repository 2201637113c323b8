"""Ready-set resolution and next-task ranking over plain task lists."""

from __future__ import annotations

from knecht.tasks import Status, Task, blocker_info, dependents, pick_next, rank, ready_set
from knecht.tasks.allocator import next_id


def _t(task_id: int, status: Status = Status.OPEN, pain: int = 0, blocked_by=()) -> Task:
    return Task(id=task_id, status=status, title=f"task {task_id}", pain_count=pain,
                blocked_by=set(blocked_by))


# ---------------------------------------------------------------------------
# ready_set
# ---------------------------------------------------------------------------


class TestReadySet:
    def test_only_open_tasks(self):
        tasks = [_t(1), _t(2, Status.DELIVERED), _t(3, Status.DONE)]
        assert [t.id for t in ready_set(tasks)] == [1]

    def test_open_blocker_blocks(self):
        tasks = [_t(1), _t(2, blocked_by=[1])]
        assert [t.id for t in ready_set(tasks)] == [1]

    def test_delivered_blocker_blocks(self):
        tasks = [_t(1, Status.DELIVERED), _t(2, blocked_by=[1])]
        assert ready_set(tasks) == []

    def test_done_blocker_releases(self):
        tasks = [_t(1, Status.DONE), _t(2, blocked_by=[1])]
        assert [t.id for t in ready_set(tasks)] == [2]

    def test_missing_blocker_releases(self):
        tasks = [_t(2, blocked_by=[1])]
        assert [t.id for t in ready_set(tasks)] == [2]

    def test_all_blockers_must_resolve(self):
        tasks = [_t(1, Status.DONE), _t(2), _t(3, blocked_by=[1, 2])]
        assert [t.id for t in ready_set(tasks)] == [2]

    def test_keeps_snapshot_order(self):
        tasks = [_t(5), _t(2), _t(9)]
        assert [t.id for t in ready_set(tasks)] == [5, 2, 9]

    def test_empty(self):
        assert ready_set([]) == []


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


class TestPickNext:
    def test_highest_pain_wins(self):
        assert pick_next([_t(1, pain=1), _t(2, pain=4), _t(3)]).id == 2

    def test_tie_goes_to_lowest_id(self):
        ready = [_t(10, pain=3), _t(20, pain=5), _t(5, pain=5), _t(30, pain=1)]
        assert pick_next(ready).id == 5

    def test_no_pain_means_oldest(self):
        assert pick_next([_t(7), _t(3), _t(4)]).id == 3

    def test_empty_is_none(self):
        assert pick_next([]) is None

    def test_rank_matches_pick_next(self):
        ready = [_t(10, pain=3), _t(20, pain=5), _t(5, pain=5), _t(30, pain=1)]
        ranked = rank(ready)
        assert [t.id for t in ranked] == [5, 20, 10, 30]
        assert ranked[0] is pick_next(ready)


# ---------------------------------------------------------------------------
# Blocker views
# ---------------------------------------------------------------------------


class TestBlockerViews:
    def test_blocker_info_sorted_with_missing(self):
        tasks = [_t(1, Status.DELIVERED), _t(4, blocked_by=[3, 1])]
        infos = blocker_info(tasks[1], tasks)
        assert [i.to_dict() for i in infos] == [
            {"id": 1, "status": "delivered", "title": "task 1", "resolved": False},
            {"id": 3, "status": "missing", "title": None, "resolved": True},
        ]

    def test_dependents(self):
        tasks = [_t(1), _t(2, blocked_by=[1]), _t(3, blocked_by=[1, 2])]
        assert [t.id for t in dependents(1, tasks)] == [2, 3]
        assert [t.id for t in dependents(3, tasks)] == []


# ---------------------------------------------------------------------------
# Id allocation
# ---------------------------------------------------------------------------


class TestNextId:
    def test_empty_ledger_starts_at_one(self):
        assert next_id([]) == 1

    def test_ignores_gaps(self):
        assert next_id([_t(1), _t(7), _t(3)]) == 8

    def test_high_water_wins_over_live_ids(self):
        assert next_id([_t(1)], high_water=6) == 7

    def test_live_ids_win_over_stale_mark(self):
        assert next_id([_t(9)], high_water=2) == 10
