"""Tests for timewise/planner.py - day structure and daily feasibility."""

from datetime import date

import pytest

from timewise.config import UserConfig
from timewise.models import Activity
from timewise.planner import (
    COGNITIVE_LOAD_ORDER,
    FeasibilityStatus,
    Planner,
    check_daily_feasibility,
    get_day_structure,
)

MONDAY = date(2024, 7, 15)
WEDNESDAY = date(2024, 7, 17)
SATURDAY = date(2024, 7, 20)
SUNDAY = date(2024, 7, 21)


@pytest.fixture
def planner(repository, clock):
    # clock: Wednesday 2024-07-17 09:00 local
    return Planner(repository, clock=clock)


def _estimate(minutes, load="moderate", **kwargs):
    return Activity(
        id=f"a{minutes}-{load}",
        label=f"{minutes} minutes",
        cognitive_load=load,
        estimated_duration=minutes,
        **kwargs,
    )


class TestDayStructure:

    def test_working_day_defaults_to_today(self, planner):
        structure = planner.get_day_structure()

        assert structure.date == WEDNESDAY
        assert structure.day_start_time == "09:00"
        assert structure.lunch_break_start == "12:00"
        assert structure.lunch_break_end == "12:30"
        assert structure.work_window_end == "16:30"
        assert structure.total_available_minutes == 420
        assert structure.is_working_day is True

    def test_saturday_has_a_shorter_window(self):
        structure = get_day_structure(UserConfig(), SATURDAY)

        assert structure.day_start_time == "10:00"
        assert structure.lunch_break_end == "13:00"
        assert structure.work_window_end == "13:30"
        assert structure.total_available_minutes == 180

    def test_sunday_is_a_non_working_day(self, planner):
        structure = planner.get_day_structure("2024-07-21")

        assert structure.day_start_time == "00:00"
        assert structure.work_window_end == "00:00"
        assert structure.total_available_minutes == 0
        assert structure.is_working_day is False

    def test_fractional_targets_use_whole_minutes(self):
        config = UserConfig(daily_work_targets={"monday": 7.5})

        structure = get_day_structure(config, MONDAY)

        assert structure.total_available_minutes == 450
        assert structure.work_window_end == "17:00"

    def test_to_dict_uses_date_key(self):
        assert get_day_structure(UserConfig(), MONDAY).to_dict()["date"] == "2024-07-15"

    def test_malformed_date_key_is_rejected(self, planner):
        with pytest.raises(ValueError):
            planner.get_day_structure("15/07/2024")


class TestDayStructureValidation:

    def test_defaults_are_valid(self):
        UserConfig().validate_day_structure()

    def test_lunch_may_be_disabled_on_a_working_day(self):
        config = UserConfig()
        config.lunch_break_start_times["monday"] = "00:00"
        config.lunch_break_durations["monday"] = 0

        config.validate_day_structure()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("day_start_times", "25:00"),
            ("day_start_times", "9:00"),
            ("lunch_break_start_times", "12:60"),
            ("lunch_break_start_times", "08:30"),
            ("lunch_break_durations", 181),
            ("lunch_break_durations", -1),
        ],
        ids=["hour-out-of-range", "unpadded", "minute-out-of-range", "lunch-before-start",
             "lunch-too-long", "negative-lunch"],
    )
    def test_invalid_layouts_name_the_weekday(self, field, value):
        config = UserConfig()
        getattr(config, field)["tuesday"] = value

        with pytest.raises(ValueError, match="tuesday"):
            config.validate_day_structure()


class TestFeasibility:

    @pytest.mark.parametrize(
        "minutes,status",
        [
            (0, FeasibilityStatus.FEASIBLE),
            (300, FeasibilityStatus.FEASIBLE),
            (336, FeasibilityStatus.FEASIBLE),
            (337, FeasibilityStatus.TIGHT),
            (420, FeasibilityStatus.TIGHT),
            (421, FeasibilityStatus.NOT_FEASIBLE),
        ],
    )
    def test_status_thresholds(self, minutes, status):
        result = check_daily_feasibility([_estimate(minutes)], UserConfig(), MONDAY)

        assert result.status is status
        assert result.total_duration_minutes == minutes
        assert result.daily_work_target_minutes == 420

    def test_colors_follow_status(self):
        assert FeasibilityStatus.FEASIBLE.color == "green"
        assert FeasibilityStatus.TIGHT.color == "yellow"
        assert FeasibilityStatus.NOT_FEASIBLE.color == "red"
        assert FeasibilityStatus.NOT_APPLICABLE.color == "gray"

    def test_planned_work_on_a_day_off_is_not_applicable(self):
        result = check_daily_feasibility([_estimate(60)], UserConfig(), SUNDAY)

        assert result.status is FeasibilityStatus.NOT_APPLICABLE
        assert result.color == "gray"

    def test_nothing_planned_on_a_day_off_is_feasible(self):
        result = check_daily_feasibility([], UserConfig(), SUNDAY)
        assert result.status is FeasibilityStatus.FEASIBLE

    def test_scheduled_days_and_archived_activities(self):
        activities = [
            _estimate(100, scheduled_days=["monday"]),
            _estimate(50),
            _estimate(500, archived=True),
        ]

        monday = check_daily_feasibility(activities, UserConfig(), MONDAY)
        wednesday = check_daily_feasibility(activities, UserConfig(), WEDNESDAY)

        assert (monday.total_duration_minutes, monday.activities_count) == (150, 2)
        assert (wednesday.total_duration_minutes, wednesday.activities_count) == (50, 1)

    def test_cognitive_load_distribution(self):
        activities = [
            _estimate(90, "intense"),
            _estimate(40, "light"),
            _estimate(20, "light", scheduled_days=["monday"]),
            Activity(id="unestimated", label="No estimate", cognitive_load="intense"),
        ]

        result = check_daily_feasibility(activities, UserConfig(), MONDAY)

        assert result.cognitive_load_distribution == {"intense": 90, "moderate": 0, "light": 60}
        assert list(result.cognitive_load_distribution) == list(COGNITIVE_LOAD_ORDER)
        assert result.activities_count == 4

    def test_repository_backed_check(self, planner):
        # focus (90, intense, mon/wed) + reading (60); email has no estimate; old is archived
        result = planner.check_daily_feasibility()

        assert result.date == WEDNESDAY
        assert result.total_duration_minutes == 150
        assert result.activities_count == 3
        assert result.status is FeasibilityStatus.FEASIBLE
        assert result.to_dict()["status"] == "feasible"
        assert result.to_dict()["color"] == "green"


class TestSetDayStructure:

    def test_partial_update_is_layered_per_weekday(self, planner, repository):
        planner.set_day_structure(
            {"dayStartTimes": {"monday": "08:00"}, "lunchBreakDurations": {"monday": 45}}
        )

        stored = repository.get_user_config()
        assert stored.day_start_times["monday"] == "08:00"
        assert stored.day_start_times["tuesday"] == "09:00"
        assert stored.lunch_break_durations["monday"] == 45
        assert planner.get_day_structure(MONDAY).work_window_end == "15:45"

    def test_invalid_update_leaves_config_untouched(self, planner, repository):
        before = repository.get_user_config()

        with pytest.raises(ValueError):
            planner.set_day_structure({"lunchBreakStartTimes": {"friday": "07:00"}})

        assert repository.get_user_config() == before

    def test_malformed_update_is_a_value_error(self, planner):
        with pytest.raises(ValueError):
            planner.set_day_structure({"dayStartTimes": "09:00"})
