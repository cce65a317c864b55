import datetime as dt
import unittest

from app.config import Settings
from app.data_sources import (
    AttemptResult,
    CallableForecastProvider,
    DaySummary,
    ForecastDay,
    HourRecord,
    ProviderForecast,
)
from app.errors import (
    ClientInputError,
    ConfigurationError,
    NoDataForDate,
    UpstreamError,
    UpstreamMalformedResponse,
)
from app.forecast_service import (
    closest_hour,
    format_last_updated,
    get_tee_time_forecast,
    normalize_date,
    round_half_up,
    tee_time_to_minutes,
)


def _hour(h: int, m: int = 0, **overrides) -> HourRecord:
    values = dict(
        time=dt.datetime(2025, 8, 19, h, m),
        temp_f=70.0 + h,
        feelslike_f=71.0 + h,
        condition_text=f"Hour {h}",
        wind_mph=float(h),
        wind_dir="S",
    )
    values.update(overrides)
    return HourRecord(**values)


def _round_trip_forecast() -> ProviderForecast:
    return ProviderForecast(
        days=[
            ForecastDay(
                date="2025-08-19",
                day=DaySummary(maxtemp_f=82.4, daily_chance_of_rain=20, uv=6.7),
                hours=[
                    _hour(10),
                    _hour(11, feelslike_f=79.6, wind_mph=7.2, wind_dir="NW", condition_text="Partly cloudy"),
                    _hour(12),
                ],
            )
        ],
        last_updated_epoch=1755613800,  # 2025-08-19 14:30 UTC
        tz_id="America/New_York",
    )


def _settings(**overrides) -> Settings:
    values = {"api_key": "test-key", "initial_delay_ms": 1000}
    values.update(overrides)
    return Settings(**values)


class TestTeeTimeParsing(unittest.TestCase):
    def test_meridiem_mapping(self):
        self.assertEqual(tee_time_to_minutes("12:00 AM"), 0)
        self.assertEqual(tee_time_to_minutes("12:00 PM"), 720)
        self.assertEqual(tee_time_to_minutes("1:30 PM"), 810)
        self.assertEqual(tee_time_to_minutes("11:20 am"), 680)
        self.assertEqual(tee_time_to_minutes("12:45 AM"), 45)

    def test_twenty_four_hour_input(self):
        self.assertEqual(tee_time_to_minutes("13:30"), 810)
        self.assertEqual(tee_time_to_minutes("7:05"), 425)

    def test_invalid_times(self):
        for raw in ("", "noon", "25:00", "13:00 PM", "10:75 AM", "0:30 AM"):
            with self.subTest(raw=raw):
                with self.assertRaises(ClientInputError):
                    tee_time_to_minutes(raw)


class TestNormalizeDate(unittest.TestCase):
    def test_accepted_formats(self):
        expected = dt.date(2025, 8, 19)
        for raw in (
            "2025-08-19",
            "08/19/2025",
            "Aug 19, 2025",
            "August 19, 2025",
            "2025-08-19T07:30:00",
            "2025-08-19T10:00:00Z",
        ):
            with self.subTest(raw=raw):
                self.assertEqual(normalize_date(raw), expected)

    def test_unparseable_date(self):
        with self.assertRaises(ClientInputError):
            normalize_date("someday")


class TestClosestHour(unittest.TestCase):
    def test_picks_nearest_hour(self):
        hours = [_hour(10), _hour(11), _hour(12)]
        self.assertEqual(closest_hour(hours, tee_time_to_minutes("11:20 AM")).time.hour, 11)

    def test_tie_goes_to_earlier_hour(self):
        hours = [_hour(11), _hour(10)]  # out of order on purpose
        self.assertEqual(closest_hour(hours, tee_time_to_minutes("10:30 AM")).time.hour, 10)

    def test_no_hours(self):
        self.assertIsNone(closest_hour([], 600))


class TestFormatting(unittest.TestCase):
    def test_round_half_up(self):
        self.assertEqual(round_half_up(82.5), 83)
        self.assertEqual(round_half_up(82.4), 82)
        self.assertEqual(round_half_up(6.5), 7)

    def test_last_updated_uses_location_zone(self):
        self.assertEqual(format_last_updated(1755613800, "America/New_York"), "Aug 19, 2025, 10:30 AM")

    def test_last_updated_falls_back(self):
        self.assertEqual(format_last_updated(1755613800, "Not/AZone"), "Aug 19, 2025, 2:30 PM")
        self.assertEqual(format_last_updated(None), "N/A")


class TestGetTeeTimeForecast(unittest.TestCase):
    def setUp(self):
        self.sleeps = []
        self.calls = []

    def _provider(self, *results):
        queue = list(results)

        def fetch(location, target_date):
            self.calls.append((location, target_date))
            return queue.pop(0)

        return CallableForecastProvider(fetch=fetch)

    def test_round_trip(self):
        provider = self._provider(AttemptResult.success(_round_trip_forecast()))

        out = get_tee_time_forecast(
            "Austin, TX", "2025-08-19", "11:20 AM", settings=_settings(), provider=provider, sleep=self.sleeps.append
        )

        self.assertEqual(out.high_temp_day, "82°F")
        self.assertEqual(out.feels_like_temp, "80°F")
        self.assertEqual(out.wind_speed_direction, "7 mph from NW")
        self.assertEqual(out.conditions_tee_time, "Partly cloudy")
        self.assertEqual(out.precipitation_chance, "20%")
        self.assertEqual(out.uv_index, "7")
        self.assertEqual(out.forecast_updated, "Aug 19, 2025, 10:30 AM")
        self.assertEqual(out.api_forecast_date, "2025-08-19")
        self.assertEqual(self.calls, [("Austin, TX", dt.date(2025, 8, 19))])

    def test_missing_values_render_not_available(self):
        forecast = ProviderForecast(
            days=[
                ForecastDay(
                    date="2025-08-19",
                    day=DaySummary(maxtemp_f=None, daily_chance_of_rain=None, uv=None),
                    hours=[
                        _hour(9, feelslike_f=None, wind_mph=None, wind_dir=None, condition_text=None),
                    ],
                )
            ]
        )
        provider = self._provider(AttemptResult.success(forecast))

        out = get_tee_time_forecast(
            "Austin", "2025-08-19", "9:00 AM", settings=_settings(), provider=provider, sleep=self.sleeps.append
        )

        for name in (
            "high_temp_day",
            "conditions_tee_time",
            "feels_like_temp",
            "precipitation_chance",
            "wind_speed_direction",
            "uv_index",
            "forecast_updated",
        ):
            self.assertEqual(getattr(out, name), "N/A", name)

    def test_zero_values_are_not_missing(self):
        forecast = ProviderForecast(
            days=[
                ForecastDay(
                    date="2025-08-19",
                    day=DaySummary(maxtemp_f=0.0, daily_chance_of_rain=0, uv=0.0),
                    hours=[_hour(9, feelslike_f=0.0, wind_mph=0.0, wind_dir="E")],
                )
            ]
        )
        provider = self._provider(AttemptResult.success(forecast))

        out = get_tee_time_forecast(
            "Austin", "2025-08-19", "9:00 AM", settings=_settings(), provider=provider, sleep=self.sleeps.append
        )

        self.assertEqual(out.high_temp_day, "0°F")
        self.assertEqual(out.precipitation_chance, "0%")
        self.assertEqual(out.wind_speed_direction, "0 mph from E")

    def test_missing_credential_makes_no_call(self):
        provider = self._provider()
        with self.assertRaises(ConfigurationError):
            get_tee_time_forecast(
                "Austin", "2025-08-19", "9:00 AM", settings=_settings(api_key=None), provider=provider
            )
        self.assertEqual(self.calls, [])

    def test_missing_fields_make_no_call(self):
        provider = self._provider()
        with self.assertRaises(ClientInputError) as ctx:
            get_tee_time_forecast(None, "2025-08-19", "  ", settings=_settings(), provider=provider)
        self.assertIn("location", ctx.exception.message)
        self.assertIn("time", ctx.exception.message)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(self.calls, [])

    def test_no_day_for_date(self):
        provider = self._provider(AttemptResult.success(_round_trip_forecast()))
        with self.assertRaises(NoDataForDate) as ctx:
            get_tee_time_forecast(
                "Austin", "2025-08-20", "9:00 AM", settings=_settings(), provider=provider, sleep=self.sleeps.append
            )
        self.assertEqual(ctx.exception.status_code, 404)

    def test_exhausted_retries(self):
        failure = AttemptResult.retryable("HTTP 503", status_code=503)
        provider = self._provider(failure, failure, failure)

        with self.assertRaises(UpstreamError) as ctx:
            get_tee_time_forecast(
                "Austin", "2025-08-19", "9:00 AM", settings=_settings(), provider=provider, sleep=self.sleeps.append
            )

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIn("after 3 attempts", ctx.exception.message)
        self.assertEqual(len(self.calls), 3)
        self.assertEqual(self.sleeps, [1.0, 2.0])

    def test_exhausted_error_carries_upstream_message(self):
        failure = AttemptResult.retryable(
            "HTTP 502", status_code=502, upstream_message="Internal application error."
        )
        provider = self._provider(failure, failure, failure)

        with self.assertRaises(UpstreamError) as ctx:
            get_tee_time_forecast(
                "Austin", "2025-08-19", "9:00 AM", settings=_settings(), provider=provider, sleep=self.sleeps.append
            )

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(
            ctx.exception.message,
            "Failed to fetch weather data after 3 attempts: HTTP 502 (Internal application error.)",
        )

    def test_upstream_bad_request_passes_through(self):
        failure = AttemptResult.retryable(
            "HTTP 400", status_code=400, upstream_message="No matching location found."
        )
        provider = self._provider(failure, failure, failure)

        with self.assertRaises(UpstreamError) as ctx:
            get_tee_time_forecast(
                "Atlantis", "2025-08-19", "9:00 AM", settings=_settings(), provider=provider, sleep=self.sleeps.append
            )

        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, "Weather API Error: No matching location found.")

    def test_malformed_response_is_not_retried(self):
        provider = self._provider(AttemptResult.terminal("response has no forecast.forecastday list"))

        with self.assertRaises(UpstreamMalformedResponse):
            get_tee_time_forecast(
                "Austin", "2025-08-19", "9:00 AM", settings=_settings(), provider=provider, sleep=self.sleeps.append
            )

        self.assertEqual(len(self.calls), 1)
        self.assertEqual(self.sleeps, [])


if __name__ == "__main__":
    unittest.main()
