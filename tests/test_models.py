import dataclasses

import pytest

from claudetheus.models import Snapshot, TokenCounts


class TestTokenCounts:
    def test_total_sums_all_four(self) -> "None":
        assert TokenCounts(1000, 500, 200, 100).total == 1800

    def test_zero_total(self) -> "None":
        assert TokenCounts().total == 0

    def test_addition(self) -> "None":
        assert TokenCounts(1, 2, 3, 4) + TokenCounts(10, 20, 30, 40) == TokenCounts(
            11, 22, 33, 44
        )

    def test_cache_tokens(self) -> "None":
        assert TokenCounts(1, 2, 3, 4).cache_tokens == 7


class TestUsageRecordProject:
    @pytest.mark.parametrize(
        "cwd, project",
        [
            ("/home/dev/project-a", "project-a"),
            ("/home/dev/project-a/", "project-a"),
            ("C:\\Users\\dev\\webapp", "webapp"),
            ("", "Unknown"),
            (None, "Unknown"),
            ("/", "Unknown"),
        ],
    )
    def test_project_label(
        self, make_record: "object", cwd: "str | None", project: "str"
    ) -> "None":
        assert make_record(working_directory=cwd).project == project


class TestSnapshot:
    def test_is_immutable(self, now: "object") -> "None":
        snapshot = Snapshot(computed_at=now)
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.tokens_today = 5
