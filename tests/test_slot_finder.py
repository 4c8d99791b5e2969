"""
Tests for the earliest-fit slot search
"""
import pytest

from src.scheduler.errors import AvailabilityQueryError
from src.scheduler.slot_finder import SlotFinder
from src.scheduler.time_utils import local_datetime

from conftest import DAY, busy


@pytest.fixture
def finder(fake_calendar, config):
    return SlotFinder(fake_calendar, config)


class TestCandidates:

    def test_half_hour_grid_across_work_window(self, finder):
        candidates = finder.candidate_starts(1, "09:00-18:00")
        assert candidates[0] == "09:00"
        assert candidates[1] == "09:30"
        assert candidates[-1] == "17:00"
        assert len(candidates) == 17

    def test_last_candidate_ends_exactly_at_work_end(self, finder):
        assert finder.candidate_starts(1.5, "09:00-18:00")[-1] == "16:30"

    def test_grid_step_is_configurable(self, finder, config):
        config.SLOT_STEP_MINUTES = 15
        assert finder.candidate_starts(1, "09:00-10:30") == ["09:00", "09:15", "09:30"]


class TestFindFreeSlot:

    def test_empty_calendar_returns_work_start(self, finder, credential):
        assert finder.find_free_slot(credential, DAY, 1, "09:00-18:00") == "09:00"

    def test_first_free_candidate_after_busy_block(self, finder, fake_calendar, credential):
        fake_calendar.busy = [busy("09:00", "10:00")]
        assert finder.find_free_slot(credential, DAY, 1, "09:00-18:00") == "10:00"

    def test_duration_longer_than_window_fits_nowhere(self, finder, fake_calendar, credential):
        assert finder.find_free_slot(credential, DAY, 10, "09:00-18:00") is None
        assert fake_calendar.calls_to("query_busy") == []

    def test_fully_booked_day(self, finder, fake_calendar, credential):
        fake_calendar.busy = [busy("08:00", "19:00")]
        assert finder.find_free_slot(credential, DAY, 0.5, "09:00-18:00") is None

    def test_busy_end_touching_candidate_start_is_free(self, finder, fake_calendar, credential):
        fake_calendar.busy = [busy("09:00", "09:30"), busy("10:30", "18:00")]
        assert finder.find_free_slot(credential, DAY, 1, "09:00-18:00") == "09:30"

    def test_off_grid_gap_is_not_considered(self, finder, fake_calendar, credential):
        # 09:15-10:15 is free but not on the half-hour grid
        fake_calendar.busy = [busy("09:00", "09:15"), busy("10:15", "18:00")]
        assert finder.find_free_slot(credential, DAY, 1, "09:00-18:00") is None

    def test_busy_intervals_in_any_order(self, finder, fake_calendar, credential):
        fake_calendar.busy = [busy("11:00", "12:00"), busy("09:00", "10:30"), busy("10:30", "11:00")]
        assert finder.find_free_slot(credential, DAY, 1, "09:00-18:00") == "12:00"

    def test_single_query_over_whole_window(self, finder, fake_calendar, credential):
        fake_calendar.busy = [busy("09:00", "12:00")]
        finder.find_free_slot(credential, DAY, 1, "09:00-18:00")

        calls = fake_calendar.calls_to("query_busy")
        assert len(calls) == 1
        _, (_, time_min, time_max), _ = calls[0]
        assert time_min == local_datetime(DAY, "09:00")
        assert time_max == local_datetime(DAY, "18:00")

    def test_repeated_calls_return_same_slot(self, finder, fake_calendar, credential):
        fake_calendar.busy = [busy("09:00", "10:00"), busy("13:00", "14:00")]
        results = {finder.find_free_slot(credential, DAY, 2, "09:00-18:00") for _ in range(5)}
        assert results == {"10:00"}

    def test_defaults_to_configured_work_hours(self, finder, config, credential):
        config.WORK_HOURS = "10:00-12:00"
        assert finder.find_free_slot(credential, DAY, 1) == "10:00"

    def test_provider_failure_is_an_availability_error(self, finder, fake_calendar, credential, provider_error):
        fake_calendar.errors["query_busy"] = provider_error
        with pytest.raises(AvailabilityQueryError):
            finder.find_free_slot(credential, DAY, 1, "09:00-18:00")
