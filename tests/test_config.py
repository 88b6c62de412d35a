"""Tests for timewise/config.py - user configuration defaults and merging."""

from datetime import date, timedelta

from timewise.config import EngineSettings, UserConfig


class TestUserConfig:

    def test_defaults(self):
        config = UserConfig.from_mapping(None)

        assert config.week_start == "monday"
        assert config.sound_enabled is True
        assert config.default_session_max_minutes == 50
        assert config.default_daily_max_minutes == 120
        assert config.daily_work_targets["monday"] == 7
        assert config.daily_work_targets["saturday"] == 3
        assert config.daily_work_targets["sunday"] == 0

    def test_partial_mapping_merges_over_defaults(self):
        config = UserConfig.from_mapping(
            {"weekStart": "sunday", "dailyWorkTargets": {"friday": 4}, "soundEnabled": False}
        )

        assert config.week_start == "sunday"
        assert config.sound_enabled is False
        assert config.daily_work_targets["friday"] == 4
        assert config.daily_work_targets["thursday"] == 7

    def test_unknown_week_start_falls_back(self, caplog):
        config = UserConfig.from_mapping({"weekStart": "wednesday"})

        assert config.week_start == "monday"
        assert "wednesday" in caplog.text

    def test_negative_targets_clamp_to_zero(self):
        config = UserConfig.from_mapping({"dailyWorkTargets": {"monday": -2}})
        assert config.target_seconds(date(2024, 7, 15)) == 0

    def test_target_seconds_by_weekday(self):
        config = UserConfig()
        assert config.target_seconds(date(2024, 7, 15)) == 25200
        assert config.target_seconds(date(2024, 7, 20)) == 10800
        assert config.target_seconds(date(2024, 7, 21)) == 0

    def test_mapping_roundtrip_is_stable(self):
        config = UserConfig.from_mapping({"weekStart": "sunday", "defaultSessionMaxMinutes": 30})
        assert UserConfig.from_mapping(config.to_mapping()) == config

    def test_day_structure_defaults_and_merge(self):
        config = UserConfig.from_mapping(
            {"dayStartTimes": {"monday": "08:30"}, "lunchBreakDurations": {"saturday": 0}}
        )

        assert config.day_start_times["monday"] == "08:30"
        assert config.day_start_times["saturday"] == "10:00"
        assert config.day_start_times["sunday"] == "00:00"
        assert config.lunch_break_start_times["friday"] == "12:00"
        assert config.lunch_break_durations["saturday"] == 0
        assert config.to_mapping()["dayStartTimes"]["monday"] == "08:30"

    def test_defaults_are_not_shared(self):
        first = UserConfig()
        first.daily_work_targets["monday"] = 1
        assert UserConfig().daily_work_targets["monday"] == 7


class TestEngineSettings:

    def test_from_options(self):
        assert EngineSettings.from_options().tick_interval == timedelta(seconds=1)
        assert EngineSettings.from_options(2.5).tick_interval == timedelta(seconds=2.5)
        assert EngineSettings.from_options(0).tick_interval == timedelta(seconds=0.1)
