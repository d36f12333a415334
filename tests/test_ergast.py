"""
Tests for the Ergast gateway: payload decoding, 429 backoff and failure kinds.
"""

import asyncio

import httpx
import pytest

from f1sync.datasource.ergast import ErgastSource
from f1sync.services.errors import UpstreamError, UpstreamErrorKind

BASE_URL = "https://ergast.test/f1"

STANDINGS_PAYLOAD = {
    "MRData": {
        "StandingsTable": {
            "season": "2021",
            "StandingsLists": [
                {
                    "DriverStandings": [
                        {
                            "position": "1",
                            "Driver": {
                                "driverId": "max_verstappen",
                                "givenName": "Max",
                                "familyName": "Verstappen",
                                "nationality": "Dutch",
                                "url": "http://en.wikipedia.org/wiki/Max_Verstappen",
                            },
                        }
                    ]
                }
            ],
        }
    }
}

EMPTY_STANDINGS_PAYLOAD = {"MRData": {"StandingsTable": {"StandingsLists": []}}}

RESULTS_PAYLOAD = {
    "MRData": {
        "RaceTable": {
            "Races": [
                {
                    "season": "2021",
                    "round": "1",
                    "raceName": "Bahrain Grand Prix",
                    "url": "http://en.wikipedia.org/wiki/2021_Bahrain_Grand_Prix",
                    "date": "2021-03-28",
                    "Circuit": {"Location": {"country": "Bahrain"}},
                    "Results": [
                        {
                            "position": "1",
                            "Driver": {
                                "driverId": "hamilton",
                                "givenName": "Lewis",
                                "familyName": "Hamilton",
                                "nationality": "British",
                            },
                        }
                    ],
                },
                {
                    "season": "2021",
                    "round": "2",
                    "raceName": "Emilia Romagna Grand Prix",
                    "date": "2021-04-18",
                    "Circuit": {"Location": {"country": "Italy"}},
                    "Results": [],
                },
            ]
        }
    }
}


def make_source(handler, sleep=None, max_attempts=3) -> ErgastSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs = {"sleep": sleep} if sleep is not None else {}
    return ErgastSource(
        base_url=BASE_URL, http_client=client, max_attempts=max_attempts, **kwargs
    )


class TestDecoding:
    def test_champion_is_normalized(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=STANDINGS_PAYLOAD)

        champion = asyncio.run(make_source(handler).fetch_champion_driver(2021))

        assert seen == ["/f1/2021/driverStandings/1.json"]
        assert champion.driver_ref == "max_verstappen"
        assert champion.name == "Max Verstappen"
        assert champion.nationality == "Dutch"

    def test_no_standings_yields_none(self):
        def handler(request):
            return httpx.Response(200, json=EMPTY_STANDINGS_PAYLOAD)

        assert asyncio.run(make_source(handler).fetch_champion_driver(2026)) is None

    def test_season_results_keep_order_and_null_winners(self):
        def handler(request):
            assert request.url.params["limit"] == "100"
            return httpx.Response(200, json=RESULTS_PAYLOAD)

        races = asyncio.run(make_source(handler).fetch_season_results(2021))

        assert [r.round for r in races] == [1, 2]
        assert races[0].name == "Bahrain Grand Prix"
        assert races[0].country == "Bahrain"
        assert races[0].date == "2021-03-28"
        assert races[0].winner.driver_ref == "hamilton"
        assert races[1].winner is None

    def test_unexpected_payload_is_unknown_error(self):
        def handler(request):
            return httpx.Response(200, json={"MRData": {}})

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(make_source(handler).fetch_season_results(2021))

        assert exc_info.value.kind is UpstreamErrorKind.UNKNOWN
        assert exc_info.value.year == 2021
        assert exc_info.value.operation == "fetch_season_results"


class TestRateLimitRetry:
    def test_retry_after_is_honoured_once(self, recording_sleep):
        responses = [
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(200, json=STANDINGS_PAYLOAD),
        ]
        calls = []

        def handler(request):
            calls.append(request)
            return responses[len(calls) - 1]

        source = make_source(handler, sleep=recording_sleep)
        champion = asyncio.run(source.fetch_champion_driver(2021))

        assert len(calls) == 2
        assert recording_sleep.delays == [2.0]
        assert champion.driver_ref == "max_verstappen"

    def test_backoff_doubles_with_default_retry_after(self, recording_sleep):
        responses = [
            httpx.Response(429),
            httpx.Response(429),
            httpx.Response(200, json=STANDINGS_PAYLOAD),
        ]
        calls = []

        def handler(request):
            calls.append(request)
            return responses[len(calls) - 1]

        asyncio.run(make_source(handler, sleep=recording_sleep).fetch_champion_driver(2021))

        assert len(calls) == 3
        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.parametrize("header", ["inf", "-inf", "nan", "Wed, 21 Oct 2026 07:28:00 GMT"])
    def test_unusable_retry_after_falls_back_to_default(self, recording_sleep, header):
        responses = [
            httpx.Response(429, headers={"Retry-After": header}),
            httpx.Response(200, json=STANDINGS_PAYLOAD),
        ]
        calls = []

        def handler(request):
            calls.append(request)
            return responses[len(calls) - 1]

        asyncio.run(make_source(handler, sleep=recording_sleep).fetch_champion_driver(2021))

        assert len(calls) == 2
        assert recording_sleep.delays == [1.0]

    def test_rate_limit_becomes_terminal(self, recording_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429, headers={"Retry-After": "1"})

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(
                make_source(handler, sleep=recording_sleep).fetch_champion_driver(2021)
            )

        assert exc_info.value.kind is UpstreamErrorKind.RATE_LIMITED
        assert exc_info.value.status_code == 429
        assert len(calls) == 3
        assert recording_sleep.delays == [1.0, 2.0]


class TestFailureClassification:
    def test_server_error_is_not_retried(self, recording_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(
                make_source(handler, sleep=recording_sleep).fetch_season_results(2019)
            )

        assert exc_info.value.kind is UpstreamErrorKind.HTTP_STATUS
        assert exc_info.value.status_code == 500
        assert len(calls) == 1
        assert recording_sleep.delays == []

    def test_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(make_source(handler).fetch_champion_driver(2019))

        assert exc_info.value.kind is UpstreamErrorKind.TIMEOUT
        assert "2019" in str(exc_info.value)

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("Name or service not known", request=request)

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(make_source(handler).fetch_champion_driver(2019))

        assert exc_info.value.kind is UpstreamErrorKind.NETWORK

    def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(make_source(handler).fetch_champion_driver(2019))

        assert exc_info.value.kind is UpstreamErrorKind.UNKNOWN
